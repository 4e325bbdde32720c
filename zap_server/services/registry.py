# zap_server/services/registry.py
import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import selectinload

from zap_server.db.engine import get_session
from zap_server.db.models import Action, Trigger, User, Zap
from zapflow.adapters.models import WebhookTriggerConfig
from zapflow.models import ActionDefinition, TriggerDefinition, ZapDefinition, ZapStatus

logger = logging.getLogger(__name__)


def _to_definition(zap: Zap) -> ZapDefinition:
    """Detach a loaded Zap row into a read-only snapshot."""
    trigger = zap.trigger
    return ZapDefinition(
        id=zap.id,
        name=zap.name,
        status=ZapStatus(zap.status),
        user_id=zap.user_id,
        trigger=TriggerDefinition(
            id=trigger.id if trigger else None,
            type=trigger.type if trigger else "",
            metadata=dict(trigger.trigger_metadata or {}) if trigger else {},
        ),
        actions=[
            ActionDefinition(
                id=action.id,
                type=action.type,
                metadata=dict(action.action_metadata or {}),
                sorting_order=action.sorting_order,
            )
            for action in zap.actions
        ],
    )


def _zap_query(session):
    return session.query(Zap).options(selectinload(Zap.trigger), selectinload(Zap.actions))


# ----------------------------------------------------------------------
# Read contract used by the scheduler and the execution engine
# ----------------------------------------------------------------------
def list_active_zaps_by_trigger_type(trigger_type: str) -> List[ZapDefinition]:
    """Active zaps whose trigger has the given type (case-insensitive)."""
    session = get_session()
    try:
        zaps = (
            _zap_query(session)
            .join(Trigger, Trigger.zap_id == Zap.id)
            .filter(Zap.status == ZapStatus.ACTIVE.value)
            .filter(Trigger.type == trigger_type.strip().lower())
            .order_by(Zap.created_at.asc())
            .all()
        )
        return [_to_definition(zap) for zap in zaps]
    finally:
        session.close()


def get_zap(zap_id: str) -> Optional[ZapDefinition]:
    """Get a zap by ID, whatever its status."""
    session = get_session()
    try:
        zap = _zap_query(session).filter(Zap.id == zap_id).one_or_none()
        return _to_definition(zap) if zap else None
    finally:
        session.close()


def find_zap_by_webhook_id(webhook_id: str) -> Optional[ZapDefinition]:
    """Active zap whose webhook trigger carries `webhook_id`."""
    for zap in list_active_zaps_by_trigger_type("webhook"):
        metadata = zap.trigger.metadata
        candidate = metadata.get("webhookId", metadata.get("webhook_id"))
        if candidate == webhook_id:
            return zap
    return None


def get_user_credentials(user_id: Optional[str]) -> Optional[Dict[str, Any]]:
    """Mailbox credentials of a zap owner, or None when the owner has not connected Google."""
    if not user_id:
        return None
    session = get_session()
    try:
        user = session.get(User, user_id)
        if not user or not user.google_access_token:
            return None
        return {
            "email": user.email or user.address,
            "access_token": user.google_access_token,
            "refresh_token": user.google_refresh_token,
        }
    finally:
        session.close()


# ----------------------------------------------------------------------
# Zap management
# ----------------------------------------------------------------------
def _build_actions(zap_id: str, actions: List[Dict[str, Any]]) -> List[Action]:
    rows = []
    for index, action in enumerate(actions):
        if not action.get("type"):
            raise ValueError("Action type is required")
        sorting_order = action.get("sorting_order")
        rows.append(
            Action(
                id=str(uuid.uuid4()),
                zap_id=zap_id,
                type=action["type"],
                action_metadata=action.get("metadata") or {},
                sorting_order=index if sorting_order is None else sorting_order,
            )
        )
    orders = [row.sorting_order for row in rows]
    if len(orders) != len(set(orders)):
        raise ValueError("sorting_order must be unique within a zap")
    return rows


def _validate_trigger(trigger: Dict[str, Any]) -> None:
    if not (trigger.get("type") or "").strip():
        raise ValueError("Trigger type is required")
    if trigger["type"].strip().lower() == "webhook":
        # Webhook zaps are only reachable through their webhookId
        WebhookTriggerConfig.model_validate(trigger.get("metadata") or {})


def create_zap(payload: Dict[str, Any]) -> ZapDefinition:
    """
    Create a zap with its trigger and actions in one transaction. Expects keys:
      name (required), user_id, trigger {type, metadata}, actions [{type, metadata, sorting_order}].

    Raises:
        ValueError: If required fields are missing or action orders collide
    """
    if not payload.get("name"):
        raise ValueError("Name is required")
    trigger = payload.get("trigger") or {}
    _validate_trigger(trigger)

    zap_id = str(uuid.uuid4())
    actions = _build_actions(zap_id, payload.get("actions") or [])

    session = get_session()
    try:
        zap = Zap(id=zap_id, name=payload["name"], status=ZapStatus.ACTIVE.value, user_id=payload.get("user_id"))
        session.add(zap)
        session.add(
            Trigger(
                id=str(uuid.uuid4()),
                zap_id=zap_id,
                type=trigger["type"].strip().lower(),
                trigger_metadata=trigger.get("metadata") or {},
            )
        )
        session.add_all(actions)
        session.commit()
        logger.info("Created zap %s (%s) with %d action(s)", zap_id, payload["name"], len(actions))
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    created = get_zap(zap_id)
    if created is None:
        raise RuntimeError(f"Zap {zap_id} missing right after create")
    return created


def list_zaps(user_id: Optional[str] = None) -> List[ZapDefinition]:
    """Active zaps, optionally filtered by owner."""
    session = get_session()
    try:
        query = _zap_query(session).filter(Zap.status == ZapStatus.ACTIVE.value)
        if user_id:
            query = query.filter(Zap.user_id == user_id)
        return [_to_definition(zap) for zap in query.order_by(Zap.created_at.desc()).all()]
    finally:
        session.close()


def update_zap(
    zap_id: str,
    name: Optional[str] = None,
    trigger: Optional[Dict[str, Any]] = None,
    actions: Optional[List[Dict[str, Any]]] = None,
) -> Optional[ZapDefinition]:
    """
    Update name and/or trigger; a provided action list replaces all actions.

    Returns None if the zap does not exist.
    """
    if trigger is not None:
        _validate_trigger(trigger)
    new_actions = _build_actions(zap_id, actions) if actions is not None else None

    session = get_session()
    try:
        zap = _zap_query(session).filter(Zap.id == zap_id).one_or_none()
        if not zap:
            return None

        if name:
            zap.name = name

        if trigger is not None:
            if zap.trigger is None:
                zap.trigger = Trigger(id=str(uuid.uuid4()), zap_id=zap_id, type="", trigger_metadata={})
            zap.trigger.type = trigger["type"].strip().lower()
            zap.trigger.trigger_metadata = trigger.get("metadata") or {}

        if new_actions is not None:
            # Delete the old batch before inserting the new one (sorting_order is unique per zap)
            for action in list(zap.actions):
                session.delete(action)
            session.flush()
            session.expire(zap, ["actions"])
            session.add_all(new_actions)

        session.commit()
        logger.info("Updated zap %s", zap_id)
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    return get_zap(zap_id)


def delete_zap(zap_id: str) -> bool:
    """Soft delete: the zap stays in the database with status 'deleted'."""
    session = get_session()
    try:
        zap = session.get(Zap, zap_id)
        if not zap:
            return False
        zap.status = ZapStatus.DELETED.value
        session.commit()
        logger.info("Deleted zap %s", zap_id)
        return True
    finally:
        session.close()

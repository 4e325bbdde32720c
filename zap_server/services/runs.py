# zap_server/services/runs.py
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import selectinload

from zap_server.db.engine import get_session
from zap_server.db.models import ActionRun, ZapRun
from zapflow.models import ActionRunStatus, ZapRunStatus

logger = logging.getLogger(__name__)

TERMINAL_ZAP_RUN_STATUSES = {
    ZapRunStatus.COMPLETED,
    ZapRunStatus.PARTIALLY_COMPLETED,
    ZapRunStatus.FAILED,
}


def create_zap_run(zap_id: str, metadata: Optional[Dict[str, Any]] = None) -> ZapRun:
    """Create a ZapRun in 'running' state."""
    session = get_session()
    try:
        zap_run = ZapRun(
            id=str(uuid.uuid4()),
            zap_id=zap_id,
            status=ZapRunStatus.RUNNING.value,
            run_metadata=metadata or {},
            created_at=datetime.now(timezone.utc),
        )
        session.add(zap_run)
        session.commit()
        logger.debug("Created zap run %s for zap %s", zap_run.id, zap_id)
        return zap_run
    finally:
        session.close()


def update_zap_run(zap_run_id: str, status: ZapRunStatus, results: Dict[str, Any]) -> None:
    """Move a ZapRun to its final status and store the results blob as its metadata."""
    session = get_session()
    try:
        zap_run = session.get(ZapRun, zap_run_id)
        if not zap_run:
            logger.error("Zap run %s not found", zap_run_id)
            return
        zap_run.status = status.value
        zap_run.run_metadata = results
        if status in TERMINAL_ZAP_RUN_STATUSES:
            zap_run.finished_at = datetime.now(timezone.utc)
        session.commit()
    finally:
        session.close()


def create_action_run(action_id: str, zap_run_id: str, metadata: Optional[Dict[str, Any]] = None) -> ActionRun:
    """Create an ActionRun in 'running' state, before the action executes."""
    session = get_session()
    try:
        action_run = ActionRun(
            id=str(uuid.uuid4()),
            action_id=action_id,
            zap_run_id=zap_run_id,
            status=ActionRunStatus.RUNNING.value,
            run_metadata=metadata or {},
            created_at=datetime.now(timezone.utc),
        )
        session.add(action_run)
        session.commit()
        return action_run
    finally:
        session.close()


def update_action_run(
    action_run_id: str,
    status: ActionRunStatus,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """Record an ActionRun's terminal outcome."""
    session = get_session()
    try:
        action_run = session.get(ActionRun, action_run_id)
        if not action_run:
            logger.error("Action run %s not found", action_run_id)
            return
        action_run.status = status.value
        action_run.message = message
        action_run.details = details or {}
        if status != ActionRunStatus.RUNNING:
            action_run.finished_at = datetime.now(timezone.utc)
        session.commit()
    finally:
        session.close()


def get_zap_run(zap_run_id: str) -> Optional[ZapRun]:
    """Get a ZapRun with its ActionRuns loaded."""
    session = get_session()
    try:
        return (
            session.query(ZapRun)
            .options(selectinload(ZapRun.action_runs))
            .filter(ZapRun.id == zap_run_id)
            .one_or_none()
        )
    finally:
        session.close()


def list_zap_runs(zap_id: str, limit: int = 10, offset: int = 0) -> List[ZapRun]:
    """Runs of a zap, newest first."""
    session = get_session()
    try:
        return (
            session.query(ZapRun)
            .filter(ZapRun.zap_id == zap_id)
            .order_by(ZapRun.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
    finally:
        session.close()


def count_zap_runs(zap_id: Optional[str] = None) -> int:
    session = get_session()
    try:
        query = session.query(ZapRun)
        if zap_id:
            query = query.filter(ZapRun.zap_id == zap_id)
        return query.count()
    finally:
        session.close()

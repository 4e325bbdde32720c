# zapflow/actions/factory.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from zapflow.actions.base import ActionHandler
from zapflow.actions.email import EmailAction
from zapflow.actions.models import ActionType
from zapflow.actions.slack import SlackAction
from zapflow.actions.webhook import WebhookAction

logger = logging.getLogger(__name__)

ACTION_HANDLERS: Dict[ActionType, type[ActionHandler]] = {
    ActionType.EMAIL: EmailAction,
    ActionType.WEBHOOK: WebhookAction,
    ActionType.SLACK: SlackAction,
}


def register_action_handler(action_type: ActionType, handler_cls: type[ActionHandler]) -> None:
    """Register (or replace) the handler used for `action_type`."""
    if action_type == ActionType.UNKNOWN:
        raise ValueError("Cannot register a handler for UNKNOWN actions")
    ACTION_HANDLERS[action_type] = handler_cls
    logger.debug("Registered action handler %s → %s", action_type.value, handler_cls.__name__)


def create_action_handler(action_type: str, metadata: Dict[str, Any]) -> Optional[ActionHandler]:
    """
    Create a handler instance for a stored action.

    Args:
        action_type: Type tag as stored on the action (case-insensitive)
        metadata: Action metadata, validated against the handler's input model

    Returns:
        Handler instance, or None when no handler exists for the type

    Raises:
        ValueError: If the metadata does not fit the handler's input model
    """
    handler_cls = ACTION_HANDLERS.get(ActionType.parse(action_type))
    if handler_cls is None:
        return None
    return handler_cls.from_metadata(metadata or {})

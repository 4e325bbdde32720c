from zapflow.actions.base import ActionHandler
from zapflow.actions.factory import create_action_handler, register_action_handler
from zapflow.actions.models import ActionResult, ActionType
from zapflow.actions.runner import execute_action

__all__ = [
    "ActionHandler",
    "ActionResult",
    "ActionType",
    "create_action_handler",
    "execute_action",
    "register_action_handler",
]

# zapflow/actions/runner.py
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from zapflow.actions.factory import create_action_handler
from zapflow.actions.models import ActionResult

logger = logging.getLogger(__name__)


def unimplemented_result(action_type: str) -> ActionResult:
    return ActionResult(
        success=False,
        message=f"Action type '{action_type}' is not implemented yet",
        details={"type": action_type},
    )


def execute_action(
    action_type: str,
    metadata: Optional[Dict[str, Any]],
    trigger_payload: Optional[Dict[str, Any]],
) -> ActionResult:
    """
    Dispatch one action by type and return a uniform result.

    This is the action executor boundary: it never raises. Unknown types,
    invalid metadata and handler exceptions all come back as
    ActionResult(success=False).
    """
    start_time = time.time()
    action_type = action_type or "UNKNOWN"

    try:
        handler = create_action_handler(action_type, metadata or {})
        if handler is None:
            logger.warning("Unhandled action type: %s", action_type)
            result = unimplemented_result(action_type)
        else:
            result = handler.execute(trigger_payload or {})

    except ValueError as e:
        # Input validation error (pydantic ValidationError is a ValueError)
        logger.error("Action %s has invalid metadata: %s", action_type, e)
        result = ActionResult(
            success=False,
            message=f"Invalid {action_type} action: {e}",
            details={"error": str(e)},
        )

    except Exception as e:
        logger.error("Action %s failed: %s", action_type, e, exc_info=True)
        result = ActionResult(
            success=False,
            message=f"Action failed: {e}",
            details={"error": str(e)},
        )

    result.duration_ms = int((time.time() - start_time) * 1000)
    return result

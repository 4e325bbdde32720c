# zap_server/services/executor.py
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from zap_server.services.registry import get_zap
from zap_server.services.runs import create_action_run, create_zap_run, update_action_run, update_zap_run
from zapflow.actions import ActionResult, execute_action
from zapflow.exceptions import ZapNotFoundError
from zapflow.models import ActionRunStatus, ZapDefinition, ZapRunResult, ZapRunStatus, ZapStatus

logger = logging.getLogger(__name__)

# (action_type, action_metadata, trigger_payload) -> result
ActionExecutor = Callable[[str, Dict[str, Any], Dict[str, Any]], Union[ActionResult, Dict[str, Any]]]


# Structured logging adapter that includes zap_run_id and zap_id
class ZapRunLoggerAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        extra = self.extra or {}
        zap_run_id = str(extra.get("zap_run_id", "unknown"))[:8]
        zap_id = str(extra.get("zap_id", "unknown"))[:8]
        formatted_msg = f"[zap_run={zap_run_id}] [zap={zap_id}] {msg}"
        return formatted_msg, kwargs


def _as_result(raw: Union[ActionResult, Dict[str, Any]]) -> ActionResult:
    if isinstance(raw, ActionResult):
        return raw
    return ActionResult(**raw)


def execute_zap(
    zap: ZapDefinition,
    trigger_payload: Optional[Dict[str, Any]],
    source: str = "manual",
    action_executor: ActionExecutor = execute_action,
) -> ZapRunResult:
    """
    Run a zap's actions once, in sorting order, and persist the outcome.

    Every action gets an ActionRun, even after an earlier action failed; there
    is no short-circuiting. The ZapRun ends 'completed' when all actions
    succeeded and 'partially_completed' otherwise. 'failed' is only written
    when the run breaks down outside of action dispatch (e.g. the database).

    Args:
        zap: Snapshot of the zap to run
        trigger_payload: Data from the trigger that fired
        source: Entry point, stored on the run ("schedule", "webhook", "manual")
        action_executor: Dispatch function for single actions

    Returns:
        ZapRunResult summary
    """
    trigger_payload = trigger_payload or {}
    run_metadata: Dict[str, Any] = {"source": source, "trigger": trigger_payload}

    zap_run = create_zap_run(zap.id, run_metadata)
    started_at = zap_run.created_at
    run_logger = ZapRunLoggerAdapter(logger, {"zap_run_id": zap_run.id, "zap_id": zap.id})
    run_logger.info("Executing zap '%s' (%d action(s), source=%s)", zap.name, len(zap.actions), source)

    action_results: List[Dict[str, Any]] = []
    all_actions_succeeded = True

    try:
        for action in zap.actions:
            action_run = create_action_run(action.id, zap_run.id, dict(action.metadata))

            try:
                result = _as_result(action_executor(action.type, action.metadata, trigger_payload))
            except Exception as e:
                run_logger.error("Error executing action %s: %s", action.id, e, exc_info=True)
                result = ActionResult(success=False, message=f"Action failed: {e}", details={"error": str(e)})

            update_action_run(
                action_run.id,
                ActionRunStatus.SUCCESS if result.success else ActionRunStatus.FAILED,
                result.message,
                result.details,
            )

            if not result.success:
                all_actions_succeeded = False
                run_logger.warning("Action %s (%s) failed: %s", action.id, action.type, result.message)

            action_results.append(
                {
                    "action_id": action.id,
                    "action_run_id": action_run.id,
                    "type": action.type,
                    "success": result.success,
                    "message": result.message,
                    "details": result.details,
                }
            )
    except Exception as e:
        run_logger.error("Zap run aborted: %s", e, exc_info=True)
        update_zap_run(
            zap_run.id,
            ZapRunStatus.FAILED,
            {**run_metadata, "action_results": action_results, "error": str(e)},
        )
        raise

    status = ZapRunStatus.COMPLETED if all_actions_succeeded else ZapRunStatus.PARTIALLY_COMPLETED
    update_zap_run(zap_run.id, status, {**run_metadata, "action_results": action_results})
    run_logger.info("Zap run finished with status: %s", status.value)

    return ZapRunResult(
        success=True,
        message=f"Zap run {'completed successfully' if all_actions_succeeded else 'completed with some errors'}",
        zap_id=zap.id,
        zap_name=zap.name,
        zap_run_id=zap_run.id,
        status=status,
        action_results=action_results,
        started_at=started_at,
        finished_at=datetime.now(timezone.utc),
    )


def execute_zap_by_id(
    zap_id: str,
    trigger_payload: Optional[Dict[str, Any]],
    source: str = "manual",
    action_executor: ActionExecutor = execute_action,
) -> ZapRunResult:
    """
    Resolve a zap and execute it.

    Raises:
        ZapNotFoundError: If the zap does not exist or was deleted. No ZapRun is created.
    """
    zap = get_zap(zap_id)
    if zap is None or zap.status != ZapStatus.ACTIVE:
        logger.error("Zap not found: %s", zap_id)
        raise ZapNotFoundError(zap_id)
    return execute_zap(zap, trigger_payload, source=source, action_executor=action_executor)

# zap_server/routers/runs.py
from fastapi import APIRouter, HTTPException, status

from zap_server.db.models import ZapRun
from zap_server.schemas.runs import ActionRunResponse, ZapRunResponse
from zap_server.services.runs import get_zap_run

router = APIRouter()


def _run_to_response(run: ZapRun, include_action_runs: bool = False) -> ZapRunResponse:
    """Convert ZapRun model to ZapRunResponse schema."""
    action_runs = None
    if include_action_runs:
        action_runs = [
            ActionRunResponse(
                id=action_run.id,
                action_id=action_run.action_id,
                status=action_run.status,
                message=action_run.message,
                details=action_run.details,
                created_at=action_run.created_at,
                finished_at=action_run.finished_at,
            )
            for action_run in run.action_runs
        ]

    return ZapRunResponse(
        id=run.id,
        zap_id=run.zap_id,
        status=run.status,
        metadata=run.run_metadata,
        created_at=run.created_at,
        finished_at=run.finished_at,
        action_runs=action_runs,
    )


@router.get("/runs/{run_id}", response_model=ZapRunResponse)
def get_run_endpoint(run_id: str):
    """Get a zap run with its action runs."""
    run = get_zap_run(run_id)
    if not run:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Run not found")
    return _run_to_response(run, include_action_runs=True)

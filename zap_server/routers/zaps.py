# zap_server/routers/zaps.py
from fastapi import APIRouter, HTTPException, Query, status

from zap_server.routers.runs import _run_to_response
from zap_server.schemas.runs import ZapRunListResponse
from zap_server.schemas.zaps import (
    ActionResponse,
    TriggerResponse,
    ZapCreateRequest,
    ZapListResponse,
    ZapResponse,
    ZapUpdateRequest,
)
from zap_server.services.registry import create_zap, delete_zap, get_zap, list_zaps, update_zap
from zap_server.services.runs import count_zap_runs, list_zap_runs
from zapflow.models import ZapDefinition

router = APIRouter()


def _zap_to_response(zap: ZapDefinition) -> ZapResponse:
    """Convert a zap snapshot to ZapResponse schema."""
    return ZapResponse(
        id=zap.id,
        name=zap.name,
        status=zap.status.value,
        user_id=zap.user_id,
        trigger=TriggerResponse(id=zap.trigger.id, type=zap.trigger.type, metadata=zap.trigger.metadata),
        actions=[
            ActionResponse(id=a.id, type=a.type, metadata=a.metadata, sorting_order=a.sorting_order)
            for a in zap.actions
        ],
    )


@router.post("/zaps", response_model=ZapResponse, status_code=status.HTTP_201_CREATED)
def create_zap_endpoint(request: ZapCreateRequest):
    """Create a zap with its trigger and actions."""
    try:
        zap = create_zap(request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _zap_to_response(zap)


@router.get("/zaps", response_model=ZapListResponse)
def list_zaps_endpoint(user_id: str | None = Query(None, description="Filter by owner")):
    """List active zaps."""
    return ZapListResponse(zaps=[_zap_to_response(zap) for zap in list_zaps(user_id=user_id)])


@router.get("/zaps/{zap_id}", response_model=ZapResponse)
def get_zap_endpoint(zap_id: str):
    """Get a zap by ID."""
    zap = get_zap(zap_id)
    if not zap:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Zap not found")
    return _zap_to_response(zap)


@router.put("/zaps/{zap_id}", response_model=ZapResponse)
def update_zap_endpoint(zap_id: str, request: ZapUpdateRequest):
    """Update a zap. A provided action list replaces the existing actions."""
    data = request.model_dump(exclude_unset=True)
    try:
        zap = update_zap(
            zap_id,
            name=data.get("name"),
            trigger=data.get("trigger"),
            actions=data.get("actions"),
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not zap:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Zap not found")
    return _zap_to_response(zap)


@router.delete("/zaps/{zap_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_zap_endpoint(zap_id: str):
    """Soft-delete a zap."""
    if not delete_zap(zap_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Zap not found")


@router.get("/zaps/{zap_id}/runs", response_model=ZapRunListResponse)
def list_zap_runs_endpoint(
    zap_id: str,
    limit: int = Query(10, ge=1, le=100, description="Maximum number of runs to return"),
    offset: int = Query(0, ge=0, description="Offset for pagination"),
):
    """List runs of a zap, newest first."""
    if not get_zap(zap_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Zap not found")

    runs = list_zap_runs(zap_id, limit=limit, offset=offset)
    return ZapRunListResponse(
        runs=[_run_to_response(run) for run in runs],
        total=count_zap_runs(zap_id),
        limit=limit,
        offset=offset,
    )

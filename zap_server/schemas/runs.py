# zap_server/schemas/runs.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ExecuteRequest(BaseModel):
    """Request to execute a zap now."""

    model_config = ConfigDict(populate_by_name=True)

    trigger_payload: Dict[str, Any] = Field(
        default_factory=dict, alias="triggerPayload", description="Data from the trigger that fired"
    )
    source: str = Field("manual", description="Entry point recorded on the run")


class ActionRunResponse(BaseModel):
    id: str
    action_id: Optional[str] = None
    status: str  # "running", "success", "failed"
    message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    created_at: datetime
    finished_at: Optional[datetime] = None


class ZapRunResponse(BaseModel):
    """Zap run status and results."""

    id: str
    zap_id: str
    status: str  # "running", "completed", "partially_completed", "failed"
    metadata: Optional[Dict[str, Any]] = None
    created_at: datetime
    finished_at: Optional[datetime] = None
    action_runs: Optional[List[ActionRunResponse]] = None


class ZapRunListResponse(BaseModel):
    """Runs of a zap with pagination."""

    runs: List[ZapRunResponse]
    total: int
    limit: int
    offset: int

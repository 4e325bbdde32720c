# zapflow/models.py
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class TriggerType(str, Enum):
    """Supported trigger sources."""

    GMAIL = "gmail"
    PRICE = "price"
    WEBHOOK = "webhook"


class ZapStatus(str, Enum):
    ACTIVE = "active"
    DELETED = "deleted"


class ZapRunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIALLY_COMPLETED = "partially_completed"
    FAILED = "failed"


class ActionRunStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class TriggerDefinition(BaseModel):
    """A zap's trigger as seen by the scheduler."""

    id: Optional[str] = None
    type: str
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("type")
    @classmethod
    def normalize_type(cls, v: str) -> str:
        return v.strip().lower()


class ActionDefinition(BaseModel):
    """One step of a zap, in execution order."""

    id: str
    type: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    sorting_order: int = 0


class ZapDefinition(BaseModel):
    """
    Read-only snapshot of a persisted zap.

    Detached from the database session so it can be handed across threads
    (scheduler timers, request workers) without lazy loading.
    """

    id: str
    name: str
    status: ZapStatus = ZapStatus.ACTIVE
    user_id: Optional[str] = None
    trigger: TriggerDefinition
    actions: List[ActionDefinition] = Field(default_factory=list)

    @field_validator("actions")
    @classmethod
    def order_actions(cls, v: List[ActionDefinition]) -> List[ActionDefinition]:
        return sorted(v, key=lambda a: a.sorting_order)


class RawSignal(BaseModel):
    """Adapter output before edge detection."""

    external_id: str = Field(..., description="Stable identifier from the source (message id, sample key)")
    value: Optional[float] = Field(None, description="Numeric sample for value-based sources")
    observed_at: datetime
    payload: Dict[str, Any] = Field(default_factory=dict)


class TriggerEvent(BaseModel):
    """A trigger that newly fired for a zap."""

    zap_id: str
    trigger_type: TriggerType
    payload: Dict[str, Any] = Field(default_factory=dict)


class ZapRunResult(BaseModel):
    """Summary of one zap execution, returned to callers of the engine."""

    success: bool
    message: str
    zap_id: str
    zap_name: str
    zap_run_id: str
    status: ZapRunStatus
    action_results: List[Dict[str, Any]] = Field(default_factory=list)
    started_at: datetime
    finished_at: datetime

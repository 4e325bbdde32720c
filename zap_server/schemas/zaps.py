# zap_server/schemas/zaps.py
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TriggerIn(BaseModel):
    """Trigger of a zap."""

    type: str = Field(..., min_length=1, description="Trigger type: gmail, price or webhook")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Type-specific trigger configuration")


class ActionIn(BaseModel):
    """One action of a zap."""

    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(..., min_length=1, description="Action type, e.g. EMAIL, WEBHOOK, SLACK")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Type-specific action configuration")
    sorting_order: Optional[int] = Field(
        None, alias="sortingOrder", ge=0, description="Execution position (defaults to list index)"
    )


class ZapCreateRequest(BaseModel):
    """Request to create a zap."""

    name: str = Field(..., min_length=1, description="Human-readable name")
    user_id: Optional[str] = Field(None, description="Owner of the zap")
    trigger: TriggerIn
    actions: List[ActionIn] = Field(default_factory=list)


class ZapUpdateRequest(BaseModel):
    """Partial update; a provided action list replaces all actions."""

    name: Optional[str] = Field(None, min_length=1)
    trigger: Optional[TriggerIn] = None
    actions: Optional[List[ActionIn]] = None


class TriggerResponse(BaseModel):
    id: Optional[str] = None
    type: str
    metadata: Dict[str, Any]


class ActionResponse(BaseModel):
    id: str
    type: str
    metadata: Dict[str, Any]
    sorting_order: int


class ZapResponse(BaseModel):
    """Zap with its trigger and ordered actions."""

    id: str
    name: str
    status: str  # "active" or "deleted"
    user_id: Optional[str] = None
    trigger: TriggerResponse
    actions: List[ActionResponse]


class ZapListResponse(BaseModel):
    """List of zaps."""

    zaps: List[ZapResponse]

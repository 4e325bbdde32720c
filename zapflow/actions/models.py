# zapflow/actions/models.py
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

BODY_PREVIEW_LENGTH = 100


class ActionType(str, Enum):
    """Action tags known to the platform. Only some have a handler."""

    EMAIL = "EMAIL"
    WEBHOOK = "WEBHOOK"
    SLACK = "SLACK"
    DISCORD = "DISCORD"
    TWITTER = "TWITTER"
    GOOGLE_SHEETS = "GOOGLE_SHEETS"
    NOTION = "NOTION"
    CUSTOM = "CUSTOM"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "ActionType":
        """Map a stored type tag onto the enum; anything unrecognized is UNKNOWN."""
        if not raw:
            return cls.UNKNOWN
        try:
            return cls(raw.strip().upper())
        except ValueError:
            return cls.UNKNOWN


class EmailInput(BaseModel):
    """Metadata of an email action."""

    to: str = Field(..., min_length=1, description="Recipient address")
    subject: str = Field("", description="Subject line")
    body: str = Field("", description="Plain-text body")


class WebhookInput(BaseModel):
    """Metadata of an outbound webhook action."""

    url: str = Field(..., min_length=1, description="Target URL")
    method: str = Field("POST", description="HTTP method")
    headers: Dict[str, Any] = Field(default_factory=dict)
    payload: Any = Field(default_factory=dict)


class SlackInput(BaseModel):
    """Metadata of a Slack message action."""

    channel: str = Field(..., min_length=1, description="Channel name without '#'")
    message: str = Field("", description="Message text")


class ActionResult(BaseModel):
    """Uniform outcome of one action dispatch."""

    success: bool = Field(..., description="Whether the action executed successfully")
    message: str = Field("", description="Human-readable outcome")
    details: Dict[str, Any] = Field(default_factory=dict, description="Action-specific structured data")
    duration_ms: Optional[int] = Field(None, description="Execution duration in milliseconds")


def preview(text: Optional[str], limit: int = BODY_PREVIEW_LENGTH) -> str:
    """First `limit` characters of `text`, with '...' appended when truncated."""
    text = text or ""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."

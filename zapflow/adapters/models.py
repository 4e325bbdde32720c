# zapflow/adapters/models.py
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TriggerConfig(BaseModel):
    """Base class for typed trigger metadata. Accepts camelCase keys as stored by the UI."""

    model_config = ConfigDict(populate_by_name=True)


class MailboxTriggerConfig(TriggerConfig):
    """Metadata of a mailbox search (gmail) trigger."""

    criteria: Literal["subject", "from", "body"] = Field("subject", description="Which part of the mail to match")
    value: str = Field(..., min_length=1, description="Search term")
    label: str = Field("INBOX", min_length=1, description="Mailbox label to search in")
    mark_read: bool = Field(True, alias="markRead", description="Mark matched messages as read")

    @field_validator("criteria", mode="before")
    @classmethod
    def normalize_criteria(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class PriceTriggerConfig(TriggerConfig):
    """Metadata of a price threshold trigger."""

    symbol: str = Field(..., min_length=1, description="Ticker symbol, e.g. ETH")
    target_price: float = Field(..., alias="targetPrice", gt=0, description="Threshold in USD")
    condition: Literal["above", "below"] = Field("above", description="Fire when price goes above/below target")

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("condition", mode="before")
    @classmethod
    def normalize_condition(cls, v: Any) -> Any:
        if v is None or v == "":
            return "above"
        return v.strip().lower() if isinstance(v, str) else v


class WebhookTriggerConfig(TriggerConfig):
    """Metadata of an inbound webhook trigger."""

    webhook_id: str = Field(..., alias="webhookId", min_length=1)

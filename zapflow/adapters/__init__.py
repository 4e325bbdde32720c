from zapflow.adapters.base import SignalAdapter
from zapflow.adapters.mailbox import MailboxSearchAdapter
from zapflow.adapters.models import MailboxTriggerConfig, PriceTriggerConfig, WebhookTriggerConfig
from zapflow.adapters.price_feed import PriceFeedAdapter
from zapflow.adapters.webhook import build_webhook_event

__all__ = [
    "SignalAdapter",
    "MailboxSearchAdapter",
    "PriceFeedAdapter",
    "MailboxTriggerConfig",
    "PriceTriggerConfig",
    "WebhookTriggerConfig",
    "build_webhook_event",
]

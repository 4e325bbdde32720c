# zapflow/adapters/webhook.py
from __future__ import annotations

from typing import Any, Mapping

from zapflow.models import TriggerEvent, TriggerType

# Hop-by-hop and transport headers that carry no meaning for a zap
_DROPPED_HEADERS = {"content-length", "connection", "host", "accept-encoding", "transfer-encoding"}


def build_webhook_event(zap_id: str, webhook_id: str, headers: Mapping[str, str], body: Any) -> TriggerEvent:
    """
    An inbound webhook request is the trigger event itself; there is no
    polling and no edge detection for this source.
    """
    kept_headers = {k.lower(): v for k, v in headers.items() if k.lower() not in _DROPPED_HEADERS}
    return TriggerEvent(
        zap_id=zap_id,
        trigger_type=TriggerType.WEBHOOK,
        payload={"webhook": {"id": webhook_id, "headers": kept_headers, "payload": body}},
    )

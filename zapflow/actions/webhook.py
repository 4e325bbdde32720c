# zapflow/actions/webhook.py
from __future__ import annotations

import logging
from typing import Any, Dict

from zapflow.actions.base import ActionHandler
from zapflow.actions.models import ActionResult, ActionType, WebhookInput

logger = logging.getLogger(__name__)


class WebhookAction(ActionHandler):
    action_type = ActionType.WEBHOOK
    input_model = WebhookInput

    def execute(self, trigger_payload: Dict[str, Any]) -> ActionResult:
        data: WebhookInput = self.input  # type: ignore[assignment]
        method = data.method.upper()
        logger.info("Would call webhook: %s %s", method, data.url)
        return ActionResult(
            success=True,
            message=f"Webhook would be called: {data.url}",
            details={
                "url": data.url,
                "method": method,
                "headers": data.headers,
                "payload": data.payload,
            },
        )

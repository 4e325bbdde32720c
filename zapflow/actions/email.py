# zapflow/actions/email.py
from __future__ import annotations

import logging
from typing import Any, Dict

from zapflow.actions.base import ActionHandler
from zapflow.actions.models import ActionResult, ActionType, EmailInput, preview

logger = logging.getLogger(__name__)


class EmailAction(ActionHandler):
    """Describes the email that would be sent; delivery belongs to the mail transport."""

    action_type = ActionType.EMAIL
    input_model = EmailInput

    def execute(self, trigger_payload: Dict[str, Any]) -> ActionResult:
        data: EmailInput = self.input  # type: ignore[assignment]
        logger.info("Would send email to: %s", data.to)
        return ActionResult(
            success=True,
            message=f"Email would be sent to {data.to}",
            details={
                "to": data.to,
                "subject": data.subject,
                "body_preview": preview(data.body),
            },
        )

# zapflow/actions/slack.py
from __future__ import annotations

import logging
from typing import Any, Dict

from zapflow.actions.base import ActionHandler
from zapflow.actions.models import ActionResult, ActionType, SlackInput

logger = logging.getLogger(__name__)


class SlackAction(ActionHandler):
    action_type = ActionType.SLACK
    input_model = SlackInput

    def execute(self, trigger_payload: Dict[str, Any]) -> ActionResult:
        data: SlackInput = self.input  # type: ignore[assignment]
        channel = data.channel.lstrip("#")
        logger.info("Would send Slack message to #%s", channel)
        return ActionResult(
            success=True,
            message=f"Slack message would be sent to #{channel}",
            details={"channel": channel, "message": data.message},
        )

# zap_server/services/dispatch.py
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from zap_server.services.executor import execute_zap
from zapflow import conf
from zapflow.models import TriggerEvent, ZapDefinition

logger = logging.getLogger(__name__)


class ZapDispatcher(ABC):
    """Hands a fired trigger to the execution engine."""

    @abstractmethod
    def dispatch(self, zap: ZapDefinition, event: TriggerEvent) -> Dict[str, Any]:
        """Execute `zap` for `event` and return the ZapRunResult summary."""
        pass


class InProcessDispatcher(ZapDispatcher):
    """Runs the engine in the scheduler's own process."""

    def dispatch(self, zap: ZapDefinition, event: TriggerEvent) -> Dict[str, Any]:
        result = execute_zap(zap, event.payload, source="schedule")
        return result.model_dump(mode="json")


class HttpDispatcher(ZapDispatcher):
    """Calls POST /execute/{zap_id} on a separately deployed executor."""

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else conf.EXECUTE_TIMEOUT_S
        self.session = session or requests.Session()

    def dispatch(self, zap: ZapDefinition, event: TriggerEvent) -> Dict[str, Any]:
        """
        Raises:
            requests.RequestException: On timeout, connection error or non-2xx answer
        """
        logger.info("Executing zap %s via %s", zap.id, self.base_url)
        response = self.session.post(
            f"{self.base_url}/execute/{zap.id}",
            json={"trigger_payload": event.payload, "source": "schedule"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()


def get_dispatcher() -> ZapDispatcher:
    """HTTP hand-off when EXECUTOR_URL is configured, in-process otherwise."""
    if conf.EXECUTOR_URL:
        return HttpDispatcher(conf.EXECUTOR_URL)
    return InProcessDispatcher()

# zapflow/adapters/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, List, Optional

from pydantic import ValidationError

from zapflow.adapters.models import TriggerConfig
from zapflow.exceptions import InvalidTriggerConfig
from zapflow.models import RawSignal, TriggerType


class SignalAdapter(ABC):
    """
    Base class for polled trigger sources.

    An adapter turns one external source into raw signals. It does not decide
    whether a signal is new; that is the edge detector's job.
    """

    trigger_type: ClassVar[TriggerType]
    config_model: ClassVar[type[TriggerConfig]]

    def parse_config(self, metadata: Optional[Dict[str, Any]]) -> TriggerConfig:
        """
        Structural validity check of trigger metadata.

        Raises:
            InvalidTriggerConfig: If required fields are missing or malformed
        """
        try:
            return self.config_model.model_validate(metadata or {})
        except ValidationError as e:
            raise InvalidTriggerConfig(f"Invalid {self.trigger_type.value} trigger metadata: {e}") from e

    @abstractmethod
    def scan(self, config: TriggerConfig, credentials: Optional[Dict[str, Any]] = None) -> List[RawSignal]:
        """
        Probe the source once.

        Args:
            config: Parsed trigger metadata
            credentials: Source credentials of the zap owner, when the source needs them

        Returns:
            Raw signals observed in this scan (possibly empty)
        """
        pass

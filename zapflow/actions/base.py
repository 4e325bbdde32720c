# zapflow/actions/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict

from pydantic import BaseModel

from zapflow.actions.models import ActionResult, ActionType


class ActionHandler(ABC):
    """
    Base class for all action handlers.

    A handler performs ONE step of a zap with validated input. Handlers may
    raise; the runner converts anything raised into a failed ActionResult.
    """

    action_type: ClassVar[ActionType]
    input_model: ClassVar[type[BaseModel]]

    def __init__(self, input: BaseModel):
        self.input = input

    @classmethod
    def from_metadata(cls, metadata: Dict[str, Any]) -> "ActionHandler":
        """Validate raw action metadata into the handler's input model."""
        return cls(cls.input_model(**metadata))

    @abstractmethod
    def execute(self, trigger_payload: Dict[str, Any]) -> ActionResult:
        """
        Run the action.

        Args:
            trigger_payload: Data produced by the trigger that started the run

        Returns:
            ActionResult describing what was done
        """
        pass

# zapflow/exceptions.py


class ZapNotFoundError(LookupError):
    """Raised when a zap cannot be resolved at execution start."""

    def __init__(self, zap_id: str):
        super().__init__(f"Zap with ID {zap_id} not found")
        self.zap_id = zap_id


class AdapterError(RuntimeError):
    """An external signal source was unreachable or answered with garbage."""


class InvalidTriggerConfig(ValueError):
    """Trigger metadata failed the structural validity check."""

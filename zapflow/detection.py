# zapflow/detection.py
"""
Edge detection between raw adapter signals and trigger events.

State is process-local and lives as long as the EdgeDetector instance; one
instance is built at startup and handed to the scheduler. Nothing here is
persisted, so a restart forgets seen messages and last prices.
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, Optional, Set, Tuple

from zapflow.adapters.models import PriceTriggerConfig
from zapflow.models import RawSignal, TriggerEvent, TriggerType

logger = logging.getLogger(__name__)


class SeenMessageFilter:
    """Suppresses mailbox messages that already fired a zap. Grows without eviction."""

    def __init__(self) -> None:
        self._seen: Set[Tuple[str, str]] = set()
        self._lock = threading.Lock()

    def seen_ids(self, zap_id: str) -> Set[str]:
        """Snapshot of message ids already emitted for a zap."""
        with self._lock:
            return {message_id for z, message_id in self._seen if z == zap_id}

    def classify(self, zap_id: str, signal: RawSignal) -> Optional[TriggerEvent]:
        key = (zap_id, signal.external_id)
        with self._lock:
            if key in self._seen:
                logger.debug("Suppressed already-seen message %s for zap %s", signal.external_id, zap_id)
                return None
            self._seen.add(key)
        return TriggerEvent(zap_id=zap_id, trigger_type=TriggerType.GMAIL, payload=dict(signal.payload))

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)


def condition_met(price: float, target: float, condition: str) -> bool:
    if condition == "above":
        return price > target
    return price < target


class PriceCrossingDetector:
    """
    Fires when a price crosses into the zap's condition.

    First observation policy: with no cached price for (zap, symbol), a
    reading already past the threshold fires immediately. Set
    `fire_on_first_observation=False` to only record a baseline instead.
    After that the detector is edge-triggered: it fires again only after the
    price has left the condition and re-entered it.
    """

    def __init__(self, fire_on_first_observation: bool = True) -> None:
        self.fire_on_first_observation = fire_on_first_observation
        self._last_price: Dict[Tuple[str, str], float] = {}
        self._lock = threading.Lock()

    def last_price(self, zap_id: str, symbol: str) -> Optional[float]:
        with self._lock:
            return self._last_price.get((zap_id, symbol.upper()))

    def classify(self, zap_id: str, config: PriceTriggerConfig, signal: RawSignal) -> Optional[TriggerEvent]:
        if signal.value is None:
            return None

        price = signal.value
        key = (zap_id, config.symbol.upper())
        met = condition_met(price, config.target_price, config.condition)

        with self._lock:
            previous = self._last_price.get(key)
            self._last_price[key] = price

        if not met:
            return None
        if previous is None:
            if not self.fire_on_first_observation:
                return None
        elif condition_met(previous, config.target_price, config.condition):
            return None

        logger.info(
            "Price alert triggered! %s is %s $%s (current: $%s)",
            config.symbol,
            config.condition,
            config.target_price,
            price,
        )
        return TriggerEvent(
            zap_id=zap_id,
            trigger_type=TriggerType.PRICE,
            payload={
                "price": price,
                "symbol": config.symbol,
                "target_price": config.target_price,
                "condition": config.condition,
                "timestamp": signal.observed_at.isoformat(),
            },
        )


class EdgeDetector:
    """Per-adapter detector state, constructed once per process."""

    def __init__(self, fire_on_first_observation: bool = True) -> None:
        self.mailbox = SeenMessageFilter()
        self.price = PriceCrossingDetector(fire_on_first_observation=fire_on_first_observation)

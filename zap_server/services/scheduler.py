# zap_server/services/scheduler.py
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from zap_server.services.dispatch import ZapDispatcher, get_dispatcher
from zap_server.services.registry import get_user_credentials, list_active_zaps_by_trigger_type
from zapflow import conf
from zapflow.adapters import MailboxSearchAdapter, PriceFeedAdapter
from zapflow.detection import EdgeDetector
from zapflow.exceptions import AdapterError, InvalidTriggerConfig
from zapflow.models import TriggerEvent, TriggerType, ZapDefinition

logger = logging.getLogger(__name__)

POLLED_TRIGGER_TYPES = (TriggerType.GMAIL, TriggerType.PRICE)


class TickGuard:
    """Per-adapter 'tick in progress' token. A tick that cannot take it is skipped."""

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()

    def try_enter(self) -> bool:
        return self._lock.acquire(blocking=False)

    def exit(self) -> None:
        self._lock.release()

    @property
    def busy(self) -> bool:
        return self._lock.locked()


class TriggerScheduler:
    """
    Polls trigger sources on one independent timer per adapter type.

    Each tick lists the active zaps of its trigger type, scans the adapter,
    runs edge detection and hands every new trigger event to the dispatcher.
    Zaps are processed one after another; a failing zap is logged and
    skipped without affecting the rest of the tick.
    """

    def __init__(
        self,
        detector: EdgeDetector,
        dispatcher: Optional[ZapDispatcher] = None,
        mailbox_adapter: Optional[MailboxSearchAdapter] = None,
        price_adapter: Optional[PriceFeedAdapter] = None,
        intervals: Optional[Dict[TriggerType, int]] = None,
        initial_delay_s: Optional[int] = None,
    ):
        self.detector = detector
        self.dispatcher = dispatcher or get_dispatcher()
        self.mailbox_adapter = mailbox_adapter or MailboxSearchAdapter()
        self.price_adapter = price_adapter or PriceFeedAdapter()
        self.intervals = intervals or {
            TriggerType.GMAIL: conf.MAILBOX_POLL_INTERVAL_S,
            TriggerType.PRICE: conf.PRICE_POLL_INTERVAL_S,
        }
        self.initial_delay_s = conf.INITIAL_TICK_DELAY_S if initial_delay_s is None else initial_delay_s
        self.guards: Dict[TriggerType, TickGuard] = {t: TickGuard(t.value) for t in POLLED_TRIGGER_TYPES}
        self._zap_handlers: Dict[TriggerType, Callable[[ZapDefinition], List[TriggerEvent]]] = {
            TriggerType.GMAIL: self._scan_mailbox_zap,
            TriggerType.PRICE: self._scan_price_zap,
        }
        self._scheduler: Optional[BackgroundScheduler] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        if self._scheduler is not None:
            logger.warning("Trigger scheduler already running")
            return

        scheduler = BackgroundScheduler(timezone="UTC")
        for trigger_type in POLLED_TRIGGER_TYPES:
            interval = self.intervals[trigger_type]
            scheduler.add_job(
                func=self.run_tick,
                trigger=IntervalTrigger(seconds=interval),
                args=[trigger_type],
                id=f"tick-{trigger_type.value}",
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
            logger.info("   - %s: checking every %d seconds", trigger_type.value, interval)

        # Best-effort first feedback without waiting a full period
        scheduler.add_job(
            func=self.run_initial_ticks,
            trigger=DateTrigger(run_date=datetime.now(timezone.utc) + timedelta(seconds=self.initial_delay_s)),
            id="initial-tick",
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info("Trigger monitoring started")

    def shutdown(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown()
        self._scheduler = None
        logger.info("Trigger monitoring stopped")

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------
    def run_initial_ticks(self) -> None:
        for trigger_type in POLLED_TRIGGER_TYPES:
            self.run_tick(trigger_type)

    def run_tick(self, trigger_type: TriggerType) -> Optional[int]:
        """
        Run one monitoring cycle for a trigger type.

        Returns:
            Number of trigger events dispatched, or None if the tick was
            skipped because the previous tick of this type is still running.
        """
        guard = self.guards[trigger_type]
        if not guard.try_enter():
            logger.warning("Skipping %s tick: previous tick still in progress", trigger_type.value)
            return None
        try:
            return self._tick(trigger_type)
        finally:
            guard.exit()

    def _tick(self, trigger_type: TriggerType) -> int:
        try:
            zaps = list_active_zaps_by_trigger_type(trigger_type.value)
        except Exception as e:
            logger.error("Could not list %s zaps: %s", trigger_type.value, e, exc_info=True)
            return 0

        logger.info("Monitoring %d %s zap(s)...", len(zaps), trigger_type.value)
        handler = self._zap_handlers[trigger_type]
        dispatched = 0

        for zap in zaps:
            try:
                events = handler(zap)
            except InvalidTriggerConfig as e:
                logger.warning("Skipping zap %s: %s", zap.id, e)
                continue
            except AdapterError as e:
                logger.error("Skipping zap %s this cycle: %s", zap.id, e)
                continue
            except Exception as e:
                logger.error("Error processing zap %s: %s", zap.id, e, exc_info=True)
                continue

            for event in events:
                try:
                    summary = self.dispatcher.dispatch(zap, event)
                    dispatched += 1
                    logger.info("Zap %s executed → %s", zap.id, summary.get("status"))
                except Exception as e:
                    logger.error("Failed to execute zap %s: %s", zap.id, e, exc_info=True)

        return dispatched

    def _scan_mailbox_zap(self, zap: ZapDefinition) -> List[TriggerEvent]:
        config = self.mailbox_adapter.parse_config(zap.trigger.metadata)
        credentials = get_user_credentials(zap.user_id)
        if credentials is None:
            logger.warning("Skipping zap %s: owner has no Google credentials", zap.id)
            return []

        signals = self.mailbox_adapter.scan(
            config,
            credentials,
            known_ids=self.detector.mailbox.seen_ids(zap.id),
        )
        events = []
        for signal in signals:
            event = self.detector.mailbox.classify(zap.id, signal)
            if event is not None:
                logger.info("New email trigger for zap %s: %s", zap.id, signal.payload["email"]["subject"])
                events.append(event)
        return events

    def _scan_price_zap(self, zap: ZapDefinition) -> List[TriggerEvent]:
        config = self.price_adapter.parse_config(zap.trigger.metadata)
        events = []
        for signal in self.price_adapter.scan(config):
            event = self.detector.price.classify(zap.id, config, signal)
            if event is not None:
                events.append(event)
        return events


# Process-wide monitor used by the API server lifespan
_trigger_scheduler: TriggerScheduler | None = None
_scheduler_lock = threading.Lock()


def start_trigger_monitoring(detector: Optional[EdgeDetector] = None) -> TriggerScheduler:
    """Build the edge detector and scheduler once and start the timers."""
    global _trigger_scheduler

    with _scheduler_lock:
        if _trigger_scheduler is not None:
            logger.warning("Trigger monitoring already running")
            return _trigger_scheduler

        _trigger_scheduler = TriggerScheduler(detector or EdgeDetector())
        _trigger_scheduler.start()
        return _trigger_scheduler


def stop_trigger_monitoring() -> None:
    global _trigger_scheduler

    with _scheduler_lock:
        if _trigger_scheduler is None:
            return
        _trigger_scheduler.shutdown()
        _trigger_scheduler = None

# tests/zap_server/services/test_trigger_scheduler.py
"""Test scheduler ticks end to end against an in-memory database."""
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from zap_server.services import scheduler as scheduler_module
from zap_server.services.dispatch import InProcessDispatcher
from zap_server.services.runs import count_zap_runs, get_zap_run, list_zap_runs
from zap_server.services.scheduler import TickGuard, TriggerScheduler
from zapflow.adapters import MailboxSearchAdapter, PriceFeedAdapter
from zapflow.detection import EdgeDetector
from zapflow.exceptions import AdapterError
from zapflow.models import RawSignal, TriggerType

LONG_BODY = "Ethereum just crossed your alert threshold. " * 5


def _price_adapter(prices):
    """PriceFeedAdapter whose feed answers from `prices` ({asset_id: [values...]} consumed in order)."""
    session = MagicMock()

    def get(url, params=None, timeout=None):
        asset_id = params["ids"]
        quote = prices[asset_id]
        if isinstance(quote, Exception):
            raise quote
        response = MagicMock()
        response.json.return_value = {asset_id: {"usd": quote.pop(0)}}
        return response

    session.get.side_effect = get
    return PriceFeedAdapter(session=session)


def _scheduler(price_adapter=None, mailbox_adapter=None, dispatcher=None, detector=None):
    return TriggerScheduler(
        detector or EdgeDetector(),
        dispatcher=dispatcher or InProcessDispatcher(),
        mailbox_adapter=mailbox_adapter or MagicMock(),
        price_adapter=price_adapter or _price_adapter({}),
        initial_delay_s=3600,
    )


def _mail_signal(message_id):
    return RawSignal(
        external_id=message_id,
        observed_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        payload={"email": {"id": message_id, "subject": "Invoice", "from": "a@b", "body": "", "timestamp": ""}},
    )


class TestTickGuard:
    """Test TickGuard."""

    def test_guard_is_exclusive(self):
        guard = TickGuard("price")
        assert guard.try_enter() is True
        assert guard.busy is True
        assert guard.try_enter() is False
        guard.exit()
        assert guard.busy is False


class TestPriceScenario:
    """ETH alert: 1900 then 2100 with target 2000 above."""

    def test_eth_crossing_runs_zap_once(self, make_zap):
        zap = make_zap(
            trigger_type="price",
            trigger_metadata={"symbol": "ETH", "targetPrice": 2000, "condition": "above"},
            actions=[
                {"type": "email", "metadata": {"to": "trader@example.com", "subject": "ETH alert", "body": LONG_BODY}},
                {"type": "webhook", "metadata": {"url": "https://hooks.example.com/eth"}},
            ],
        )
        scheduler = _scheduler(price_adapter=_price_adapter({"ethereum": [1900, 2100]}))

        assert scheduler.run_tick(TriggerType.PRICE) == 0
        assert count_zap_runs(zap.id) == 0

        assert scheduler.run_tick(TriggerType.PRICE) == 1
        runs = list_zap_runs(zap.id)
        assert len(runs) == 1

        run = get_zap_run(runs[0].id)
        assert run.status == "completed"
        assert run.run_metadata["source"] == "schedule"
        assert run.run_metadata["trigger"]["price"] == 2100
        assert [ar.status for ar in run.action_runs] == ["success", "success"]

        email_details = run.action_runs[0].details
        assert email_details["to"] == "trader@example.com"
        assert email_details["body_preview"] == LONG_BODY[:100] + "..."

    def test_price_staying_above_does_not_refire(self, make_zap):
        zap = make_zap(
            trigger_type="price",
            trigger_metadata={"symbol": "ETH", "targetPrice": 2000},
            actions=[{"type": "SLACK", "metadata": {"channel": "c"}}],
        )
        scheduler = _scheduler(price_adapter=_price_adapter({"ethereum": [1900, 2100, 2200, 2300]}))

        dispatched = [scheduler.run_tick(TriggerType.PRICE) for _ in range(4)]

        assert dispatched == [0, 1, 0, 0]
        assert count_zap_runs(zap.id) == 1


class TestTickIsolation:
    """One zap's failure never aborts the rest of the tick."""

    def test_malformed_metadata_is_skipped(self, make_zap):
        make_zap(trigger_type="price", trigger_metadata={"symbol": "ETH"}, name="broken")
        good = make_zap(trigger_type="price", trigger_metadata={"symbol": "BTC", "targetPrice": 100})
        scheduler = _scheduler(price_adapter=_price_adapter({"bitcoin": [150]}))

        assert scheduler.run_tick(TriggerType.PRICE) == 1
        assert count_zap_runs(good.id) == 1

    def test_adapter_crash_is_contained(self, make_zap):
        make_zap(trigger_type="price", trigger_metadata={"symbol": "ETH", "targetPrice": 100}, name="crashing")
        good = make_zap(trigger_type="price", trigger_metadata={"symbol": "BTC", "targetPrice": 100})
        scheduler = _scheduler(
            price_adapter=_price_adapter({"ethereum": RuntimeError("feed bug"), "bitcoin": [150]})
        )

        assert scheduler.run_tick(TriggerType.PRICE) == 1
        assert count_zap_runs(good.id) == 1

    def test_dispatch_failure_is_contained(self, make_zap):
        make_zap(trigger_type="price", trigger_metadata={"symbol": "ETH", "targetPrice": 100})
        make_zap(trigger_type="price", trigger_metadata={"symbol": "BTC", "targetPrice": 100})
        dispatcher = MagicMock()
        dispatcher.dispatch.side_effect = [RuntimeError("executor down"), {"status": "completed"}]
        scheduler = _scheduler(
            price_adapter=_price_adapter({"ethereum": [150], "bitcoin": [150]}),
            dispatcher=dispatcher,
        )

        assert scheduler.run_tick(TriggerType.PRICE) == 1
        assert dispatcher.dispatch.call_count == 2

    def test_listing_failure_ends_tick(self, db):
        scheduler = _scheduler()
        with patch.object(scheduler_module, "list_active_zaps_by_trigger_type", side_effect=RuntimeError("db")):
            assert scheduler.run_tick(TriggerType.PRICE) == 0
        assert scheduler.guards[TriggerType.PRICE].busy is False


class TestTickGuardInScheduler:
    """A tick is skipped while the previous tick of the same adapter still runs."""

    def test_busy_tick_is_skipped(self, make_zap):
        make_zap(trigger_type="price", trigger_metadata={"symbol": "ETH", "targetPrice": 100})
        price_adapter = _price_adapter({"ethereum": [150]})
        scheduler = _scheduler(price_adapter=price_adapter)

        scheduler.guards[TriggerType.PRICE].try_enter()
        try:
            assert scheduler.run_tick(TriggerType.PRICE) is None
        finally:
            scheduler.guards[TriggerType.PRICE].exit()

        price_adapter.session.get.assert_not_called()

    def test_other_adapter_not_blocked(self, db):
        scheduler = _scheduler()
        scheduler.guards[TriggerType.PRICE].try_enter()
        try:
            assert scheduler.run_tick(TriggerType.GMAIL) == 0
        finally:
            scheduler.guards[TriggerType.PRICE].exit()


class TestMailboxTick:
    """Test mailbox ticks."""

    def _mailbox_adapter(self, signals):
        adapter = MagicMock()
        adapter.parse_config.side_effect = MailboxSearchAdapter(session=MagicMock()).parse_config
        adapter.scan.return_value = signals
        return adapter

    def test_message_fires_once_across_ticks(self, make_zap, make_user):
        owner = make_user()
        zap = make_zap(
            trigger_type="gmail",
            trigger_metadata={"criteria": "subject", "value": "Invoice"},
            actions=[{"type": "SLACK", "metadata": {"channel": "billing"}}],
            user_id=owner,
        )
        adapter = self._mailbox_adapter([_mail_signal("m1")])
        scheduler = _scheduler(mailbox_adapter=adapter)

        assert scheduler.run_tick(TriggerType.GMAIL) == 1
        assert scheduler.run_tick(TriggerType.GMAIL) == 0
        assert count_zap_runs(zap.id) == 1

        credentials = adapter.scan.call_args_list[1].args[1]
        assert credentials["access_token"] == "ya29.test-token"
        assert adapter.scan.call_args_list[1].kwargs["known_ids"] == {"m1"}

    def test_owner_without_credentials_skipped(self, make_zap, make_user):
        owner = make_user(access_token=None)
        make_zap(trigger_type="gmail", trigger_metadata={"value": "Invoice"}, user_id=owner)
        adapter = self._mailbox_adapter([_mail_signal("m1")])
        scheduler = _scheduler(mailbox_adapter=adapter)

        assert scheduler.run_tick(TriggerType.GMAIL) == 0
        adapter.scan.assert_not_called()

    def test_adapter_error_skips_zap(self, make_zap, make_user):
        owner = make_user()
        make_zap(trigger_type="gmail", trigger_metadata={"value": "Invoice"}, user_id=owner)
        adapter = self._mailbox_adapter([])
        adapter.scan.side_effect = AdapterError("Gmail API error: 500")
        scheduler = _scheduler(mailbox_adapter=adapter)

        assert scheduler.run_tick(TriggerType.GMAIL) == 0


class TestLifecycle:
    """Test starting and stopping the timers."""

    def test_start_registers_one_job_per_adapter(self):
        scheduler = _scheduler()
        scheduler.start()
        try:
            assert scheduler.running is True
            job_ids = {job.id for job in scheduler._scheduler.get_jobs()}
            assert job_ids == {"tick-gmail", "tick-price", "initial-tick"}
            assert scheduler._scheduler.get_job("tick-price").max_instances == 1
        finally:
            scheduler.shutdown()
        assert scheduler.running is False

    def test_shutdown_waits_for_running_tick(self):
        scheduler = _scheduler()
        background = MagicMock()
        scheduler._scheduler = background

        scheduler.shutdown()

        background.shutdown.assert_called_once_with()
        assert scheduler.running is False

    def test_initial_ticks_run_every_adapter(self, make_zap, make_user):
        owner = make_user()
        price_zap = make_zap(
            trigger_type="price",
            trigger_metadata={"symbol": "ETH", "targetPrice": 100},
            actions=[{"type": "SLACK", "metadata": {"channel": "c"}}],
        )
        mail_zap = make_zap(
            trigger_type="gmail",
            trigger_metadata={"value": "Invoice"},
            actions=[{"type": "SLACK", "metadata": {"channel": "c"}}],
            user_id=owner,
        )
        mailbox_adapter = MagicMock()
        mailbox_adapter.parse_config.side_effect = MailboxSearchAdapter(session=MagicMock()).parse_config
        mailbox_adapter.scan.return_value = [_mail_signal("m1")]
        scheduler = _scheduler(
            price_adapter=_price_adapter({"ethereum": [150]}),
            mailbox_adapter=mailbox_adapter,
        )

        scheduler.run_initial_ticks()

        assert count_zap_runs(price_zap.id) == 1
        assert count_zap_runs(mail_zap.id) == 1
        assert all(not guard.busy for guard in scheduler.guards.values())

    def test_start_trigger_monitoring_is_idempotent(self):
        with patch.object(scheduler_module, "TriggerScheduler") as mock_cls:
            try:
                first = scheduler_module.start_trigger_monitoring()
                second = scheduler_module.start_trigger_monitoring()
                assert first is second
                mock_cls.assert_called_once()
                first.start.assert_called_once()
            finally:
                scheduler_module.stop_trigger_monitoring()
        first.shutdown.assert_called_once()

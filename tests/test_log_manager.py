"""Tests for log manager module."""

from datetime import timedelta

import pytest

from baby_log.log_manager import LogManager, LogValidationError, validate_log
from baby_log.manual_entry import ManualBreastEntry
from baby_log.models import (
    BottleContents,
    DiaperLog,
    FeedingLog,
    FeedingSubType,
    PumpingLog,
    SleepLog,
)
from baby_log.timer import BreastfeedingTimer, TimerState


class TestValidation:
    """Tests for record validation before saving."""

    def test_breast_needs_duration(self, now):
        """Zero-length breastfeeding is rejected."""
        record = FeedingLog(
            family_id="f", timestamp=now, sub_type=FeedingSubType.BREAST, total_duration=0
        )
        with pytest.raises(LogValidationError):
            validate_log(record)

    def test_bottle_needs_amount(self, now):
        """A bottle without an amount is rejected."""
        record = FeedingLog(family_id="f", timestamp=now, sub_type=FeedingSubType.BOTTLE)
        with pytest.raises(LogValidationError):
            validate_log(record)

    def test_negative_amount(self, now):
        """Negative pumped amounts are rejected."""
        with pytest.raises(LogValidationError):
            validate_log(PumpingLog(family_id="f", timestamp=now, amount=-5))

    def test_feeding_needs_subtype(self, now):
        """A feeding must say breast or bottle."""
        with pytest.raises(LogValidationError):
            validate_log(FeedingLog(family_id="f", timestamp=now))

    def test_sleep_needs_duration(self, now):
        """Zero-minute sleep is rejected."""
        with pytest.raises(LogValidationError):
            validate_log(SleepLog(family_id="f", timestamp=now, duration=0))

    def test_diaper_needs_status(self, now):
        """A diaper without status is rejected."""
        with pytest.raises(LogValidationError):
            validate_log(DiaperLog(family_id="f", timestamp=now))

    def test_zero_amount_allowed(self, now):
        """An amount of zero is present, just empty."""
        validate_log(PumpingLog(family_id="f", timestamp=now, amount=0))


class TestSaving:
    """Tests for writing records through the gateway."""

    def test_bottle(self, log_manager, gateway, now):
        """Bottle feedings carry amount and contents."""
        saved = log_manager.log_bottle(120, BottleContents.FORMULA, timestamp=now)
        assert saved.id is not None
        assert saved.family_id == "test-family"
        assert saved.user_id == "parent-1"
        stored = gateway.query("test-family")
        assert len(stored) == 1
        assert stored[0].amount == 120
        assert stored[0].contents == BottleContents.FORMULA

    def test_pumping(self, log_manager, now):
        """Pumping sessions carry amount and side."""
        saved = log_manager.log_pumping(90, side="left", timestamp=now)
        assert saved.type == "pumping"
        assert saved.side == "left"

    def test_diaper(self, log_manager):
        """Diaper changes carry status."""
        saved = log_manager.log_diaper("dirty")
        assert saved.status.value == "dirty"

    def test_sleep(self, log_manager):
        """Quick sleep entry."""
        assert log_manager.log_sleep(45).duration == 45

    def test_sleep_range(self, log_manager, now):
        """Sleep from start and end is stamped at the start."""
        saved = log_manager.log_sleep_range(now, now + timedelta(hours=2))
        assert saved.duration == 120
        assert saved.timestamp == now

    def test_sleep_range_empty_is_noop(self, log_manager, gateway, now):
        """Nothing is written when end is not after start."""
        assert log_manager.log_sleep_range(now, now - timedelta(minutes=1)) is None
        assert gateway.query("test-family") == []

    def test_invalid_record_not_sent(self, log_manager, gateway):
        """Validation failures never reach the store."""
        with pytest.raises(LogValidationError):
            log_manager.log_sleep(0)
        assert gateway.query("test-family") == []

    def test_manual_feeding(self, log_manager, now):
        """Manual entries are saved as breast feedings."""
        saved = log_manager.log_manual_feeding(ManualBreastEntry(now, duration_minutes=10))
        assert saved.manual is True
        assert saved.total_duration == 600


class TestTimerFeeding:
    """Tests for saving the stopwatch."""

    def test_save_resets_timer(self, log_manager, now):
        """The timer is cleared after a successful save."""
        timer = BreastfeedingTimer(now=now)
        timer.toggle("left", now=now)
        saved = log_manager.log_timer_feeding(timer, now=now + timedelta(minutes=8))
        assert saved.total_duration == 480
        assert timer.state == TimerState.IDLE

    def test_empty_timer_rejected(self, log_manager, now):
        """Nothing timed means nothing saved."""
        timer = BreastfeedingTimer(now=now)
        with pytest.raises(LogValidationError):
            log_manager.log_timer_feeding(timer, now=now)

    def test_failed_save_keeps_timer(self, flaky_gateway_factory, now):
        """A rejected write leaves the timer intact."""
        from baby_log.sync_gateway import GatewayError

        manager = LogManager(flaky_gateway_factory(fail_appends={1}), "test-family", "u")
        timer = BreastfeedingTimer(now=now)
        timer.toggle("right", now=now)
        with pytest.raises(GatewayError):
            manager.log_timer_feeding(timer, now=now + timedelta(minutes=3))
        assert timer.right == 180


class TestReadingAndDeleting:
    """Tests for listing and deleting."""

    def test_newest_first(self, log_manager, now):
        """Logs come back newest first."""
        log_manager.log_diaper("wet", timestamp=now - timedelta(hours=2))
        log_manager.log_diaper("dirty", timestamp=now)
        log_manager.log_diaper("both", timestamp=now - timedelta(hours=1))
        statuses = [log.status.value for log in log_manager.get_logs()]
        assert statuses == ["dirty", "both", "wet"]

    def test_family_isolation(self, gateway, now):
        """Each family only sees its own logs."""
        LogManager(gateway, "smiths").log_sleep(30, timestamp=now)
        LogManager(gateway, "joneses").log_sleep(40, timestamp=now)
        assert [log.duration for log in LogManager(gateway, "smiths").get_logs()] == [30]

    def test_delete(self, log_manager):
        """Deleted logs disappear."""
        saved = log_manager.log_sleep(20)
        log_manager.delete_log(saved.id)
        assert log_manager.get_logs() == []

"""Tests for statistics."""

from datetime import date, datetime, timedelta, timezone

import pytest

from baby_log.analytics import Analytics
from baby_log.models import (
    BottleContents,
    BreastSide,
    DiaperLog,
    FeedingLog,
    FeedingSubType,
    InventoryItem,
    PumpingLog,
    SleepLog,
)


@pytest.fixture
def logs(now):
    yesterday = now - timedelta(days=1)
    return [
        FeedingLog(family_id="f", timestamp=now, sub_type=FeedingSubType.BOTTLE,
                   contents=BottleContents.BM, amount=120),
        FeedingLog(family_id="f", timestamp=now - timedelta(hours=1),
                   sub_type=FeedingSubType.BOTTLE, contents=BottleContents.FORMULA, amount=60),
        FeedingLog(family_id="f", timestamp=now - timedelta(hours=2),
                   sub_type=FeedingSubType.BREAST, left_duration=600, right_duration=300,
                   last_side=BreastSide.RIGHT),
        PumpingLog(family_id="f", timestamp=now - timedelta(hours=3), amount=90),
        DiaperLog(family_id="f", timestamp=now - timedelta(hours=4), status="wet"),
        SleepLog(family_id="f", timestamp=now - timedelta(hours=5), duration=45),
        SleepLog(family_id="f", timestamp=yesterday, duration=120),
        PumpingLog(family_id="f", timestamp=yesterday, amount=100),
    ]


class TestDailyStats:
    """Tests for today's totals."""

    def test_today(self, logs, now):
        """Only today's records count."""
        stats = Analytics(logs, tz=timezone.utc).daily_stats(now)
        assert stats.feedings == 3
        assert stats.bottle_volume == 180
        assert stats.bottle_bm_volume == 120
        assert stats.bottle_formula_volume == 60
        assert stats.pumped_volume == 90
        assert stats.nursing_minutes == 15
        assert stats.diapers == 1
        assert stats.sleep_minutes == 45

    def test_day_boundary_uses_timezone(self):
        """A record before local midnight belongs to the previous day."""
        tz = timezone(timedelta(hours=-5))
        late = datetime(2025, 1, 2, 3, 0, tzinfo=timezone.utc)  # 22:00 on Jan 1 local
        now = datetime(2025, 1, 2, 15, 0, tzinfo=timezone.utc)
        analytics = Analytics([SleepLog(family_id="f", timestamp=late, duration=30)], tz=tz)
        assert analytics.daily_stats(now).sleep_minutes == 0

    def test_empty(self, now):
        """No logs means zeros."""
        stats = Analytics([]).daily_stats(now)
        assert stats.feedings == 0
        assert stats.bottle_volume == 0


class TestAllTimeStats:
    """Tests for totals across everything."""

    def test_totals(self, logs, now):
        """All records and inventory are included."""
        inventory = [
            InventoryItem(volume=100, pump_date=now, freeze_date=date(2025, 11, 24)),
            InventoryItem(volume=50, pump_date=now, freeze_date=date(2025, 11, 24)),
        ]
        stats = Analytics(logs, inventory).all_time_stats()
        assert stats.total_feedings == 3
        assert stats.total_pumped_volume == 190
        assert stats.total_sleep_minutes == 165
        assert stats.inventory_count == 2
        assert stats.inventory_volume == 150


class TestLastEvents:
    """Tests for the dashboard's most-recent values."""

    def test_last_events(self, logs, now):
        """Most recent of each kind."""
        last = Analytics(logs).last_events()
        assert last.fed_at == now
        assert last.pumped_at == now - timedelta(hours=3)
        assert last.last_bottle.amount == 120
        assert last.last_breast_side == "Right"

    def test_side_from_durations(self, now):
        """Without a stored side, the longer side wins."""
        log = FeedingLog(family_id="f", timestamp=now, sub_type=FeedingSubType.BREAST,
                         left_duration=400, right_duration=100)
        assert Analytics([log]).last_events().last_breast_side == "Left"

    def test_no_breastfeeding(self):
        """A dash when there is no breastfeeding."""
        assert Analytics([]).last_events().last_breast_side == "-"

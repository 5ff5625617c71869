"""Daily and all-time statistics for Baby Log."""

from datetime import datetime, timezone, tzinfo

from .models import (
    AllTimeStats,
    BottleContents,
    DailyStats,
    FeedingLog,
    FeedingSubType,
    InventoryItem,
    LastEvents,
    LogRecord,
    LogType,
)


def _is_breast(log: LogRecord) -> bool:
    return isinstance(log, FeedingLog) and log.sub_type == FeedingSubType.BREAST


def _is_bottle(log: LogRecord) -> bool:
    return isinstance(log, FeedingLog) and log.sub_type == FeedingSubType.BOTTLE


def _amount(log: LogRecord) -> float:
    return getattr(log, "amount", None) or 0.0


class Analytics:
    """Aggregates over a family's log collection and the milk inventory."""

    def __init__(
        self,
        logs: list[LogRecord],
        inventory: list[InventoryItem] | None = None,
        tz: tzinfo | None = None,
    ):
        """Initialize analytics.

        Args:
            logs: Records for one family, any order
            inventory: Stored milk items
            tz: Timezone that decides what "today" is; local time if omitted
        """
        self.logs = sorted(logs, key=lambda r: r.timestamp, reverse=True)
        self.inventory = inventory or []
        self.tz = tz

    def _local_date(self, value: datetime):
        return value.astimezone(self.tz).date()

    def todays_logs(self, now: datetime | None = None) -> list[LogRecord]:
        """Records whose timestamp falls on the current calendar day."""
        today = self._local_date(now or datetime.now(timezone.utc))
        return [log for log in self.logs if self._local_date(log.timestamp) == today]

    def daily_stats(self, now: datetime | None = None) -> DailyStats:
        """Totals for today.

        Returns:
            DailyStats with volumes in ml and durations in minutes
        """
        logs = self.todays_logs(now)
        bottles = [log for log in logs if _is_bottle(log)]
        return DailyStats(
            feedings=sum(1 for log in logs if log.type == LogType.FEEDING),
            bottle_volume=sum(_amount(log) for log in bottles),
            bottle_bm_volume=sum(
                _amount(log) for log in bottles if log.contents == BottleContents.BM  # type: ignore[union-attr]
            ),
            bottle_formula_volume=sum(
                _amount(log) for log in bottles if log.contents == BottleContents.FORMULA  # type: ignore[union-attr]
            ),
            pumped_volume=sum(_amount(log) for log in logs if log.type == LogType.PUMPING),
            nursing_minutes=sum(
                log.total_duration or 0 for log in logs if _is_breast(log)  # type: ignore[union-attr]
            )
            / 60,
            diapers=sum(1 for log in logs if log.type == LogType.DIAPER),
            sleep_minutes=sum(
                log.duration or 0 for log in logs if log.type == LogType.SLEEP  # type: ignore[union-attr]
            ),
        )

    def all_time_stats(self) -> AllTimeStats:
        """Totals across every record and the current inventory."""
        logs = self.logs
        return AllTimeStats(
            total_feedings=sum(1 for log in logs if log.type == LogType.FEEDING),
            total_bottle_volume=sum(_amount(log) for log in logs if _is_bottle(log)),
            total_pumped_volume=sum(_amount(log) for log in logs if log.type == LogType.PUMPING),
            total_nursing_minutes=sum(
                log.total_duration or 0 for log in logs if _is_breast(log)  # type: ignore[union-attr]
            )
            / 60,
            total_diapers=sum(1 for log in logs if log.type == LogType.DIAPER),
            total_sleep_minutes=sum(
                log.duration or 0 for log in logs if log.type == LogType.SLEEP  # type: ignore[union-attr]
            ),
            inventory_count=len(self.inventory),
            inventory_volume=sum(item.volume for item in self.inventory),
        )

    def last_events(self) -> LastEvents:
        """Most recent event of each kind and the side last fed on."""

        def latest(log_type: LogType) -> datetime | None:
            return next((log.timestamp for log in self.logs if log.type == log_type), None)

        last_bottle = next((log for log in self.logs if _is_bottle(log)), None)
        last_breast = next((log for log in self.logs if _is_breast(log)), None)

        side = "-"
        if isinstance(last_breast, FeedingLog):
            if last_breast.last_side is not None:
                side = "Left" if last_breast.last_side.value == "L" else "Right"
            elif (last_breast.left_duration or 0) > (last_breast.right_duration or 0):
                side = "Left"
            elif last_breast.right_duration:
                side = "Right"

        return LastEvents(
            fed_at=latest(LogType.FEEDING),
            diaper_at=latest(LogType.DIAPER),
            sleep_at=latest(LogType.SLEEP),
            pumped_at=latest(LogType.PUMPING),
            last_bottle=last_bottle,  # type: ignore[arg-type]
            last_breast=last_breast,  # type: ignore[arg-type]
            last_breast_side=side,
        )

"""Creating, validating and deleting log records."""

from datetime import datetime, timezone

from .manual_entry import ManualBreastEntry, sleep_minutes
from .models import (
    BottleContents,
    DiaperLog,
    DiaperStatus,
    FeedingLog,
    FeedingSubType,
    LogRecord,
    PumpingLog,
    SleepLog,
)
from .sync_gateway import SyncGateway
from .timer import BreastfeedingTimer


class LogValidationError(Exception):
    """Raised when a record is incomplete and must not be saved."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def validate_log(record: LogRecord) -> None:
    """Check the per-type required fields before a record is saved.

    Raises:
        LogValidationError: If the record is missing required data
    """
    if isinstance(record, FeedingLog):
        if record.sub_type == FeedingSubType.BREAST:
            if not (record.total_duration or 0) > 0:
                raise LogValidationError("Breastfeeding needs a duration greater than zero")
        elif record.sub_type == FeedingSubType.BOTTLE:
            _require_amount(record.amount, "Bottle feeding")
        else:
            raise LogValidationError("Feeding must be breast or bottle")
    elif isinstance(record, PumpingLog):
        _require_amount(record.amount, "Pumping")
    elif isinstance(record, SleepLog):
        if record.duration is None or record.duration <= 0:
            raise LogValidationError("Sleep needs a duration greater than zero")
    elif isinstance(record, DiaperLog):
        if record.status is None:
            raise LogValidationError(
                f"Diaper status must be one of: {', '.join(s.value for s in DiaperStatus)}"
            )


def _require_amount(amount: float | None, label: str) -> None:
    if amount is None:
        raise LogValidationError(f"{label} needs an amount")
    if amount < 0:
        raise LogValidationError(f"{label} amount cannot be negative")


class LogManager:
    """Writes log records through the sync gateway for one family and user."""

    def __init__(self, gateway: SyncGateway, family_id: str, user_id: str | None = None):
        """Initialize log manager.

        Args:
            gateway: Sync store all records go through
            family_id: Family partition new records belong to
            user_id: Identity stamped on new records
        """
        self.gateway = gateway
        self.family_id = family_id
        self.user_id = user_id

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def save_log(self, record: LogRecord) -> LogRecord:
        """Validate and append a record.

        Returns:
            The record carrying its new id

        Raises:
            LogValidationError: If the record is incomplete (nothing is sent)
            GatewayError: If the sync store rejects the write
        """
        validate_log(record)
        log_id = self.gateway.append(record)
        return record.model_copy(update={"id": log_id})

    def log_timer_feeding(
        self, timer: BreastfeedingTimer, now: datetime | None = None
    ) -> FeedingLog:
        """Save the timed breastfeeding session and reset the timer.

        The timer is left untouched if the save fails.

        Raises:
            LogValidationError: If nothing has been timed
        """
        record = timer.build_record(self.family_id, self.user_id, now=now)
        if record is None:
            raise LogValidationError("Breastfeeding needs a duration greater than zero")
        saved = self.save_log(record)
        timer.reset()
        return saved  # type: ignore[return-value]

    def log_manual_feeding(self, entry: ManualBreastEntry, notes: str | None = None) -> FeedingLog:
        """Save a breastfeeding entered by start/end/duration."""
        return self.save_log(entry.to_log(self.family_id, self.user_id, notes=notes))  # type: ignore[return-value]

    def log_bottle(
        self,
        amount: float,
        contents: BottleContents = BottleContents.BM,
        timestamp: datetime | None = None,
        notes: str | None = None,
    ) -> FeedingLog:
        """Save a bottle feeding of ``amount`` milliliters."""
        record = FeedingLog(
            family_id=self.family_id,
            user_id=self.user_id,
            timestamp=timestamp or self._now(),
            sub_type=FeedingSubType.BOTTLE,
            contents=contents,
            amount=amount,
            notes=notes,
        )
        return self.save_log(record)  # type: ignore[return-value]

    def log_pumping(
        self,
        amount: float,
        side: str | None = None,
        timestamp: datetime | None = None,
        notes: str | None = None,
    ) -> PumpingLog:
        """Save a pumping session of ``amount`` milliliters."""
        record = PumpingLog(
            family_id=self.family_id,
            user_id=self.user_id,
            timestamp=timestamp or self._now(),
            amount=amount,
            side=side,
            notes=notes,
        )
        return self.save_log(record)  # type: ignore[return-value]

    def log_diaper(
        self,
        status: DiaperStatus | str,
        timestamp: datetime | None = None,
        notes: str | None = None,
    ) -> DiaperLog:
        """Save a diaper change."""
        record = DiaperLog(
            family_id=self.family_id,
            user_id=self.user_id,
            timestamp=timestamp or self._now(),
            status=DiaperStatus(status),
            notes=notes,
        )
        return self.save_log(record)  # type: ignore[return-value]

    def log_sleep(
        self,
        minutes: int,
        timestamp: datetime | None = None,
        notes: str | None = None,
    ) -> SleepLog:
        """Save a sleep of a known number of minutes (quick entry)."""
        record = SleepLog(
            family_id=self.family_id,
            user_id=self.user_id,
            timestamp=timestamp or self._now(),
            duration=minutes,
            notes=notes,
        )
        return self.save_log(record)  # type: ignore[return-value]

    def log_sleep_range(
        self, start: datetime, end: datetime, notes: str | None = None
    ) -> SleepLog | None:
        """Save a sleep from start/end instants.

        Returns:
            The saved record, or None without contacting the store when the
            end is not after the start
        """
        minutes = sleep_minutes(start, end)
        if minutes is None:
            return None
        return self.log_sleep(minutes, timestamp=start, notes=notes)

    def delete_log(self, log_id: str) -> None:
        """Delete a record by id.

        Raises:
            GatewayError: If the sync store rejects the delete
        """
        self.gateway.delete(log_id)

    def get_logs(self) -> list[LogRecord]:
        """All records for the family, newest first."""
        return sorted(
            self.gateway.query(self.family_id), key=lambda r: r.timestamp, reverse=True
        )

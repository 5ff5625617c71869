"""Manual (non-timer) entry forms whose fields derive from one another."""

from datetime import datetime, timedelta

from .models import FeedingLog, FeedingSubType, TimerSide
from .units import round_half_up


class ManualBreastEntry:
    """Start, end and duration of a breastfeeding entered after the fact.

    The three fields form a cycle: whichever two were touched last are
    authoritative and the third is re-derived.

    - changing the start moves the end to start + duration
    - changing the end recomputes the duration in whole minutes, if not negative
    - changing the duration (clamped at 0) moves the end to start + duration
    """

    def __init__(
        self,
        start: datetime,
        side: TimerSide | str = TimerSide.LEFT,
        duration_minutes: int = 15,
    ):
        self.side = TimerSide(side)
        self.start = start
        self.duration = max(0, duration_minutes)
        self.end = start + timedelta(minutes=self.duration)

    def set_start(self, start: datetime) -> None:
        self.start = start
        self.end = start + timedelta(minutes=self.duration)

    def set_end(self, end: datetime) -> None:
        self.end = end
        minutes = round_half_up((end - self.start).total_seconds() / 60)
        if minutes >= 0:
            self.duration = minutes

    def set_duration(self, minutes: int) -> None:
        self.duration = max(0, minutes)
        self.end = self.start + timedelta(minutes=self.duration)

    @property
    def duration_seconds(self) -> float:
        """Seconds fed: the start/end span when it is positive, else the spinner."""
        if self.end > self.start:
            return (self.end - self.start).total_seconds()
        return self.duration * 60.0

    def to_log(self, family_id: str, user_id: str | None = None, notes: str | None = None) -> FeedingLog:
        """Build the breastfeeding record attributed entirely to the chosen side."""
        seconds = self.duration_seconds
        left = seconds if self.side == TimerSide.LEFT else 0.0
        right = seconds if self.side == TimerSide.RIGHT else 0.0
        return FeedingLog(
            family_id=family_id,
            user_id=user_id,
            timestamp=self.start,
            sub_type=FeedingSubType.BREAST,
            left_duration=left,
            right_duration=right,
            total_duration=seconds,
            last_side=self.side.short,
            manual=True,
            notes=notes,
        )


def sleep_minutes(start: datetime, end: datetime) -> int | None:
    """Whole minutes slept between two instants, or None if end is not after start."""
    minutes = round_half_up((end - start).total_seconds() / 60)
    if minutes > 0:
        return minutes
    return None

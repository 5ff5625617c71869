"""Two-sided breastfeeding stopwatch.

Only one side accumulates at a time. Elapsed time is always reconciled from
wall-clock deltas, never from tick counts, so a suspended or restarted
process picks up exactly where it left off.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import ValidationError

from .models import (
    BreastSide,
    FeedingLog,
    FeedingSubType,
    TimerSession,
    TimerSide,
    format_instant,
    parse_instant,
)

logger = logging.getLogger(__name__)


class TimerState(str, Enum):
    """Observable states of the stopwatch."""

    IDLE = "idle"
    RUNNING_LEFT = "running-left"
    RUNNING_RIGHT = "running-right"
    PAUSED = "paused"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def snapshot_session(session: TimerSession, last_tick: datetime) -> dict[str, Any]:
    """Serialize a session together with the instant it was last brought current.

    Args:
        session: Session whose timers are accurate as of ``last_tick``
        last_tick: Instant the active side was last credited

    Returns:
        JSON-ready dict
    """
    return {
        "activeTimer": session.active_timer.value if session.active_timer else None,
        "leftTimer": session.left_timer,
        "rightTimer": session.right_timer,
        "timerStartTime": (
            format_instant(session.timer_start_time) if session.timer_start_time else None
        ),
        "lastActiveSide": session.last_active_side.value if session.last_active_side else None,
        "lastTick": format_instant(last_tick),
    }


def restore_session(blob: dict[str, Any], now: datetime) -> TimerSession:
    """Rebuild a session and credit the time spent away to the active side.

    Args:
        blob: Output of ``snapshot_session``
        now: Current instant

    Returns:
        Session accurate as of ``now``

    Raises:
        ValueError: If the blob cannot be read
    """
    start = blob.get("timerStartTime")
    session = TimerSession(
        active_timer=blob.get("activeTimer"),
        left_timer=blob.get("leftTimer") or 0.0,
        right_timer=blob.get("rightTimer") or 0.0,
        timer_start_time=parse_instant(start) if start else None,
        last_active_side=blob.get("lastActiveSide"),
    )

    last_tick = blob.get("lastTick")
    if session.active_timer and last_tick:
        away = max(0.0, (now - parse_instant(last_tick)).total_seconds())
        if session.active_timer == TimerSide.LEFT:
            session.left_timer += away
        else:
            session.right_timer += away
    return session


class BreastfeedingTimer:
    """State machine over a TimerSession.

    Every operation takes the current instant explicitly so callers (and
    tests) control the clock; it defaults to the system's UTC time.
    """

    def __init__(
        self,
        session: TimerSession | None = None,
        last_tick: datetime | None = None,
        now: datetime | None = None,
    ):
        now = now or utc_now()
        self.session = session or TimerSession(timer_start_time=now)
        self.last_tick = last_tick or now

    @property
    def state(self) -> TimerState:
        s = self.session
        if s.active_timer == TimerSide.LEFT:
            return TimerState.RUNNING_LEFT
        if s.active_timer == TimerSide.RIGHT:
            return TimerState.RUNNING_RIGHT
        if s.total > 0:
            return TimerState.PAUSED
        return TimerState.IDLE

    @property
    def left(self) -> float:
        return self.session.left_timer

    @property
    def right(self) -> float:
        return self.session.right_timer

    @property
    def total(self) -> float:
        return self.session.total

    def _commit(self, now: datetime) -> float:
        """Credit the active side with the time since the last tick."""
        delta = 0.0
        if self.session.active_timer is not None:
            delta = max(0.0, (now - self.last_tick).total_seconds())
            if self.session.active_timer == TimerSide.LEFT:
                self.session.left_timer += delta
            else:
                self.session.right_timer += delta
        self.last_tick = now
        return delta

    def tick(self, now: datetime | None = None) -> float:
        """Advance the active side by the real time elapsed since the last tick.

        A long gap (app suspended) is added in one step.

        Returns:
            Seconds credited
        """
        return self._commit(now or utc_now())

    def toggle(self, side: TimerSide | str, now: datetime | None = None) -> TimerState:
        """Start, switch or pause a side.

        Toggling the running side pauses it. Toggling the other side stops the
        current one and starts the new one. The very first toggle of a fresh
        session moves the nominal start time to ``now``.

        Returns:
            State after the toggle
        """
        now = now or utc_now()
        side = TimerSide(side)
        s = self.session

        if s.left_timer == 0 and s.right_timer == 0 and s.active_timer is None:
            s.timer_start_time = now

        self._commit(now)
        s.last_active_side = side.short
        s.active_timer = None if s.active_timer == side else side
        return self.state

    def edit_start_time(self, new_start: datetime, now: datetime | None = None) -> None:
        """Backdate (or move forward) the nominal start time.

        The running side is brought current first. The shift is then credited
        to whichever side has accumulated more time, the left side on a tie,
        and clamped at zero.
        """
        self._commit(now or utc_now())
        s = self.session
        if s.timer_start_time is not None:
            diff = (s.timer_start_time - new_start).total_seconds()
            if s.left_timer >= s.right_timer:
                s.left_timer = max(0.0, s.left_timer + diff)
            else:
                s.right_timer = max(0.0, s.right_timer + diff)
        s.timer_start_time = new_start

    def reset(self) -> None:
        """Clear both sides. The start time is refreshed on the next toggle."""
        s = self.session
        s.active_timer = None
        s.left_timer = 0.0
        s.right_timer = 0.0
        s.last_active_side = None

    def build_record(
        self,
        family_id: str,
        user_id: str | None = None,
        now: datetime | None = None,
    ) -> FeedingLog | None:
        """Turn the session into a breastfeeding record.

        Returns:
            The record, or None when nothing has been timed
        """
        now = now or utc_now()
        self._commit(now)
        s = self.session
        if s.total <= 0:
            return None

        last_side = s.last_active_side
        if last_side is None:
            last_side = BreastSide.RIGHT if s.right_timer > 0 else BreastSide.LEFT

        return FeedingLog(
            family_id=family_id,
            user_id=user_id,
            timestamp=s.timer_start_time or now,
            sub_type=FeedingSubType.BREAST,
            left_duration=s.left_timer,
            right_duration=s.right_timer,
            total_duration=s.left_timer + s.right_timer,
            last_side=last_side,
        )

    def snapshot(self) -> dict[str, Any]:
        """Serialize for persistence."""
        return snapshot_session(self.session, self.last_tick)

    @classmethod
    def restore(cls, blob: dict[str, Any] | None, now: datetime | None = None) -> "BreastfeedingTimer":
        """Rebuild a timer from a persisted snapshot.

        An unreadable snapshot is logged and replaced by a fresh session.
        """
        now = now or utc_now()
        if not blob:
            return cls(now=now)
        try:
            session = restore_session(blob, now)
        except (ValidationError, ValueError, TypeError) as e:
            logger.error("Failed to restore timer: %s", e)
            return cls(now=now)
        return cls(session=session, last_tick=now, now=now)

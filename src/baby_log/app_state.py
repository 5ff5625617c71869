"""Application state and the pure reducers that move it forward.

State is never mutated in place: each reducer returns a new ``AppState``.
The held log collection is replaced wholesale by every inbound snapshot.
"""

from datetime import date, datetime, time, tzinfo
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .models import LogRecord, LogType, Preferences
from .units import VolumeUnit


class SyncStatus(str, Enum):
    """Connection state shown to the user."""

    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"
    DEGRADED = "degraded"


class View(str, Enum):
    """Screens of the application."""

    HOME = "home"
    ENTRY = "entry"
    HISTORY = "history"
    ANALYTICS = "analytics"
    SETTINGS = "settings"


class ConfirmRequest(BaseModel):
    """A destructive action waiting for the user to confirm."""

    model_config = ConfigDict(frozen=True)

    title: str
    message: str
    action: str


class AppState(BaseModel):
    """Everything the front end renders from."""

    model_config = ConfigDict(frozen=True)

    family_id: str
    current_view: View = View.HOME
    logs: list[LogRecord] = Field(default_factory=list)
    sync_status: SyncStatus = SyncStatus.IDLE
    confirm: ConfirmRequest | None = None
    visible_categories: dict[str, bool] = Field(
        default_factory=lambda: {t.value: True for t in LogType}
    )
    volume_unit: VolumeUnit = VolumeUnit.ML
    dark_mode: bool = False


def initial_state(preferences: Preferences) -> AppState:
    """Build the startup state from stored preferences."""
    return AppState(
        family_id=preferences.family_id,
        visible_categories=dict(preferences.visible_categories),
        volume_unit=preferences.volume_unit,
        dark_mode=bool(preferences.dark_mode),
        sync_status=SyncStatus.SYNCING,
    )


def apply_snapshot(state: AppState, records: list[LogRecord]) -> AppState:
    """Replace the held logs with a snapshot, newest first.

    Records from other families are dropped.
    """
    logs = sorted(
        (r for r in records if r.family_id == state.family_id),
        key=lambda r: r.timestamp,
        reverse=True,
    )
    return state.model_copy(update={"logs": logs, "sync_status": SyncStatus.IDLE})


def set_sync_status(state: AppState, status: SyncStatus) -> AppState:
    return state.model_copy(update={"sync_status": status})


def set_family(state: AppState, family_id: str) -> AppState:
    """Switch families; logs are cleared until the next snapshot arrives."""
    if family_id == state.family_id:
        return state
    return state.model_copy(
        update={"family_id": family_id, "logs": [], "sync_status": SyncStatus.SYNCING}
    )


def toggle_category(state: AppState, category: LogType | str) -> AppState:
    key = LogType(category).value
    categories = dict(state.visible_categories)
    categories[key] = not categories.get(key, True)
    return state.model_copy(update={"visible_categories": categories})


def set_volume_unit(state: AppState, unit: VolumeUnit | str) -> AppState:
    return state.model_copy(update={"volume_unit": VolumeUnit(unit)})


def navigate(state: AppState, view: View | str) -> AppState:
    return state.model_copy(update={"current_view": View(view)})


def request_confirm(state: AppState, title: str, message: str, action: str) -> AppState:
    """Open the confirmation prompt for a destructive action."""
    return state.model_copy(
        update={"confirm": ConfirmRequest(title=title, message=message, action=action)}
    )


def dismiss_confirm(state: AppState) -> AppState:
    return state.model_copy(update={"confirm": None})


def visible_logs(state: AppState) -> list[LogRecord]:
    """Logs whose category is switched on."""
    return [log for log in state.logs if state.visible_categories.get(log.type, True)]


def _local_day(instant: datetime, tz: tzinfo | None) -> date:
    return instant.astimezone(tz).date()


def _day_boundary(day: date, at: time, tz: tzinfo | None) -> datetime:
    if tz is not None:
        return datetime.combine(day, at, tzinfo=tz)
    return datetime.combine(day, at).astimezone()


def logs_in_range(
    logs: list[LogRecord],
    start: date | None = None,
    end: date | None = None,
    newest_first: bool = True,
    tz: tzinfo | None = None,
) -> list[LogRecord]:
    """Logs from the start of ``start`` through 23:59:59.999 on ``end``.

    Both ends are inclusive calendar days in ``tz`` (local time when
    omitted); a missing end leaves that side open.

    Args:
        logs: Records to filter
        start: First day to include
        end: Last day to include
        newest_first: Sort order of the result
        tz: Zone the calendar days are read in

    Returns:
        Matching records, sorted by timestamp
    """
    lower = _day_boundary(start, time.min, tz) if start else None
    upper = _day_boundary(end, time(23, 59, 59, 999000), tz) if end else None
    selected = [
        log
        for log in logs
        if (lower is None or log.timestamp >= lower) and (upper is None or log.timestamp <= upper)
    ]
    return sorted(selected, key=lambda r: r.timestamp, reverse=newest_first)


def group_by_day(
    logs: list[LogRecord], tz: tzinfo | None = None
) -> list[tuple[date, list[LogRecord]]]:
    """Split already-sorted logs into consecutive calendar days, keeping order."""
    groups: list[tuple[date, list[LogRecord]]] = []
    for log in logs:
        day = _local_day(log.timestamp, tz)
        if groups and groups[-1][0] == day:
            groups[-1][1].append(log)
        else:
            groups.append((day, [log]))
    return groups

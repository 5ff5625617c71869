"""Core data models for Baby Log."""

import math
import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .units import VolumeUnit

_SHORT_OFFSET = re.compile(r"([+-]\d{2})$")


class LogType(str, Enum):
    """Kinds of logged events."""

    FEEDING = "feeding"
    PUMPING = "pumping"
    DIAPER = "diaper"
    SLEEP = "sleep"


class FeedingSubType(str, Enum):
    """How a feeding was given."""

    BREAST = "breast"
    BOTTLE = "bottle"


class BottleContents(str, Enum):
    """What was in the bottle.

    ``breast_milk`` only appears on records imported from the legacy app.
    """

    BM = "bm"
    BREAST_MILK = "breast_milk"
    FORMULA = "formula"


class DiaperStatus(str, Enum):
    """Diaper contents."""

    WET = "wet"
    DIRTY = "dirty"
    BOTH = "both"


class BreastSide(str, Enum):
    """Short side marker stored on breastfeeding records."""

    LEFT = "L"
    RIGHT = "R"


class TimerSide(str, Enum):
    """Side of the breastfeeding stopwatch."""

    LEFT = "left"
    RIGHT = "right"

    @property
    def short(self) -> BreastSide:
        return BreastSide.LEFT if self == TimerSide.LEFT else BreastSide.RIGHT


class InventoryStatus(str, Enum):
    """Lifecycle of a stored milk bag. Only ``stored`` is used today."""

    STORED = "stored"
    THAWED = "thawed"
    CONSUMED = "consumed"


class CheckOutAction(str, Enum):
    """Ways an inventory item leaves the freezer."""

    THAW = "thaw"
    DELETE = "delete"


def to_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime. Naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 instant into an aware UTC datetime.

    Accepts the ``Z`` suffix and the short ``+00`` offset used by the legacy
    export (``2025-11-24 12:52:22.840147+00``).

    Raises:
        ValueError: If the text is not a recognizable instant
    """
    text = value.strip()
    if not text:
        raise ValueError("Empty timestamp")
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _SHORT_OFFSET.sub(r"\1:00", text) if "T" in text or " " in text else text
    return to_utc(datetime.fromisoformat(text))


def format_instant(value: datetime) -> str:
    """Wire format for instants: millisecond precision, ``Z`` suffix."""
    value = to_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


class LogBase(BaseModel):
    """Fields shared by every logged event.

    Records are immutable once built; the gateway hands back a copy carrying
    the id it assigned.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str | None = None
    family_id: str
    user_id: str | None = None
    timestamp: datetime
    notes: str | None = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_instant(v)
        if isinstance(v, datetime):
            return to_utc(v)
        return v

    @field_serializer("timestamp")
    def _serialize_timestamp(self, v: datetime) -> str:
        return format_instant(v)

    def to_document(self) -> dict[str, Any]:
        """Wire representation, camelCase keys, absent fields dropped, no id."""
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"id"}, mode="json")


def _pick(data: dict[str, Any], name: str) -> Any:
    """Read a field from raw input by attribute name or camelCase alias."""
    if name in data:
        return data[name]
    return data.get(to_camel(name))


class FeedingLog(LogBase):
    """A breast or bottle feeding."""

    type: Literal["feeding"] = "feeding"
    sub_type: FeedingSubType | None = None
    left_duration: float | None = None
    right_duration: float | None = None
    total_duration: float | None = None
    last_side: BreastSide | None = None
    manual: bool | None = None
    side: str | None = None
    contents: BottleContents | None = None
    amount: float | None = None

    @model_validator(mode="before")
    @classmethod
    def _derive_total(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        left = _pick(data, "left_duration")
        right = _pick(data, "right_duration")
        if left is None and right is None:
            return data
        if _pick(data, "total_duration") is None:
            data = dict(data)
            data["total_duration"] = (left or 0) + (right or 0)
        return data

    @model_validator(mode="after")
    def _check_total(self) -> "FeedingLog":
        if self.left_duration is None and self.right_duration is None:
            return self
        expected = (self.left_duration or 0) + (self.right_duration or 0)
        if not math.isclose(self.total_duration or 0, expected, abs_tol=1e-6):
            raise ValueError(
                f"totalDuration {self.total_duration} does not equal "
                f"leftDuration + rightDuration ({expected})"
            )
        return self


class PumpingLog(LogBase):
    """A pumping session."""

    type: Literal["pumping"] = "pumping"
    amount: float | None = None
    side: str | None = None


class DiaperLog(LogBase):
    """A diaper change.

    ``sub_type`` carries the diaper kind on records from the legacy import.
    """

    type: Literal["diaper"] = "diaper"
    status: DiaperStatus | None = None
    sub_type: str | None = None


class SleepLog(LogBase):
    """A sleep, in whole minutes."""

    type: Literal["sleep"] = "sleep"
    duration: int | None = None


LogRecord = Annotated[
    Union[FeedingLog, PumpingLog, DiaperLog, SleepLog], Field(discriminator="type")
]

_log_adapter: TypeAdapter[Any] = TypeAdapter(LogRecord)


def parse_log(data: dict[str, Any], log_id: str | None = None) -> LogRecord:
    """Build the right LogRecord variant from a wire document.

    Args:
        data: Document keyed by camelCase field names
        log_id: Id assigned by the sync store, if not part of ``data``

    Raises:
        pydantic.ValidationError: If the document is not a valid record
    """
    if log_id is not None:
        data = {**data, "id": log_id}
    return _log_adapter.validate_python(data)


class InventoryItem(BaseModel):
    """A bag of expressed milk in the freezer."""

    id: UUID = Field(default_factory=uuid4)
    volume: float = Field(gt=0)
    pump_date: datetime
    freeze_date: date
    status: InventoryStatus = InventoryStatus.STORED

    @field_validator("pump_date")
    @classmethod
    def _pump_date_utc(cls, v: datetime) -> datetime:
        return to_utc(v)


class TimerSession(BaseModel):
    """Breastfeeding stopwatch state that survives restarts."""

    active_timer: TimerSide | None = None
    left_timer: float = Field(default=0.0, ge=0)
    right_timer: float = Field(default=0.0, ge=0)
    timer_start_time: datetime | None = None
    last_active_side: BreastSide | None = None

    @property
    def total(self) -> float:
        """Seconds accumulated on both sides."""
        return self.left_timer + self.right_timer


class Preferences(BaseModel):
    """Per-device preferences read at startup and written on change."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    family_id: str = "demo-family"
    baby_name: str = "Baby Log"
    volume_unit: VolumeUnit = VolumeUnit.ML
    dark_mode: bool | None = None
    visible_categories: dict[str, bool] = Field(
        default_factory=lambda: {t.value: True for t in LogType}
    )


class ImportResult(BaseModel):
    """Outcome of a legacy CSV import."""

    success: bool
    count: int = 0
    total: int = 0
    skipped: int = 0
    failed: int = 0
    error: str | None = None


class DedupResult(BaseModel):
    """Outcome of a duplicate sweep."""

    success: bool
    deleted_count: int = 0
    scanned: int = 0
    error: str | None = None


class DailyStats(BaseModel):
    """Totals for the current day."""

    feedings: int = 0
    bottle_volume: float = 0.0
    bottle_bm_volume: float = 0.0
    bottle_formula_volume: float = 0.0
    pumped_volume: float = 0.0
    nursing_minutes: float = 0.0
    diapers: int = 0
    sleep_minutes: float = 0.0


class AllTimeStats(BaseModel):
    """Totals over every record for the family."""

    total_feedings: int = 0
    total_bottle_volume: float = 0.0
    total_pumped_volume: float = 0.0
    total_nursing_minutes: float = 0.0
    total_diapers: int = 0
    total_sleep_minutes: float = 0.0
    inventory_count: int = 0
    inventory_volume: float = 0.0


class LastEvents(BaseModel):
    """Most recent occurrence of each event type, for the dashboard."""

    fed_at: datetime | None = None
    diaper_at: datetime | None = None
    sleep_at: datetime | None = None
    pumped_at: datetime | None = None
    last_bottle: FeedingLog | None = None
    last_breast: FeedingLog | None = None
    last_breast_side: str = "-"

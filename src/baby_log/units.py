"""Volume and time display helpers.

Volumes are always held in milliliters. Everything here is a pure
presentation transform: nothing in this module is ever persisted.
"""

import math
from datetime import datetime, timezone
from enum import Enum

ML_PER_OZ = 29.5735
ML_STEP = 5
OZ_STEP = 0.5


class VolumeUnit(str, Enum):
    """Display units for milk volumes."""

    ML = "ml"
    OZ = "oz"


class Direction(str, Enum):
    """Direction of a volume stepper adjustment."""

    ADD = "add"
    SUBTRACT = "subtract"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up (towards +inf)."""
    return math.floor(value + 0.5)


def display_volume(ml: float, unit: VolumeUnit | str) -> int | str:
    """Render a milliliter amount in the requested unit.

    Milliliters round to a whole number. Ounces round to the nearest half
    ounce and drop a trailing ``.0`` (``5.0`` -> ``"5"``, ``4.5`` -> ``"4.5"``).
    """
    if VolumeUnit(unit) == VolumeUnit.ML:
        return round_half_up(ml)
    oz = ml / ML_PER_OZ
    text = f"{round_half_up(oz * 2) / 2:.1f}"
    return text[:-2] if text.endswith(".0") else text


def unit_label(unit: VolumeUnit | str) -> str:
    """Human label for a volume unit."""
    return "mL" if VolumeUnit(unit) == VolumeUnit.ML else "oz"


def adjust_volume(
    current_ml: float,
    direction: Direction | str,
    unit: VolumeUnit | str,
) -> float:
    """Step a milliliter amount up or down by one display-unit increment.

    In ml mode the step is 5 ml. In oz mode the value moves by half an
    ounce and is snapped back onto the 5 ml grid, so repeated presses land on
    round numbers in both units.

    Args:
        current_ml: Current amount in milliliters
        direction: ``add`` or ``subtract``
        unit: Active display unit

    Returns:
        New amount in milliliters, never negative
    """
    direction = Direction(direction)
    if VolumeUnit(unit) == VolumeUnit.ML:
        if direction == Direction.ADD:
            return current_ml + ML_STEP
        return max(0, current_ml - ML_STEP)

    current_oz = current_ml / ML_PER_OZ
    if direction == Direction.ADD:
        target_oz = current_oz + OZ_STEP
    else:
        target_oz = max(0.0, current_oz - OZ_STEP)
    return round_half_up(target_oz * ML_PER_OZ / ML_STEP) * ML_STEP


def format_time(seconds: float) -> str:
    """Format elapsed seconds as ``MM:SS``, dropping fractional seconds."""
    whole = math.floor(seconds)
    mins, secs = divmod(whole, 60)
    return f"{mins:02d}:{secs:02d}"


def format_duration(minutes: float) -> str:
    """Format a minute count as ``Xh Ym`` or ``Ym`` below an hour."""
    hrs = math.floor(minutes / 60)
    mins = round_half_up(minutes % 60)
    if hrs > 0:
        return f"{hrs}h {mins}m"
    return f"{mins}m"


def format_time_ago(timestamp: datetime | None, now: datetime | None = None) -> str:
    """Describe how long ago a timestamp was, e.g. ``12 min ago``."""
    if timestamp is None:
        return "-"
    now = now or datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    diff = (now - timestamp).total_seconds() / 60
    if diff < 1:
        return "Just now"
    if diff < 60:
        return f"{math.floor(diff)} min ago"
    hours = math.floor(diff / 60)
    return f"{hours} hrs {math.floor(diff % 60)} min ago"


def to_ml(value: float, unit: VolumeUnit | str) -> float:
    """Convert an amount typed in the display unit to milliliters.

    Ounce input is snapped onto the 5 ml grid.
    """
    if VolumeUnit(unit) == VolumeUnit.ML:
        return value
    return round_half_up(value * ML_PER_OZ / ML_STEP) * ML_STEP

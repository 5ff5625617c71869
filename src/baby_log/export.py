"""CSV export of a family's logs."""

from datetime import date, datetime, tzinfo
from pathlib import Path

from .models import LogRecord
from .units import VolumeUnit, display_volume, round_half_up

EXPORT_HEADERS = ["Timestamp", "Type", "Detail", "Amount", "Unit", "Duration (min)", "Notes"]


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def _detail(log: LogRecord) -> str:
    for name in ("sub_type", "status", "contents"):
        value = getattr(log, name, None)
        if value:
            return getattr(value, "value", value)
    return ""


def export_row(log: LogRecord, unit: VolumeUnit = VolumeUnit.ML, tz: tzinfo | None = None) -> str:
    """One CSV line for a record.

    Amounts are shown in ``unit``; breastfeeding seconds become whole minutes.
    """
    amount = getattr(log, "amount", None)
    total = getattr(log, "total_duration", None)
    if total:
        duration = str(round_half_up(total / 60))
    else:
        duration = str(getattr(log, "duration", None) or "")

    stamp = log.timestamp.astimezone(tz).strftime("%m/%d/%Y, %I:%M:%S %p")
    return ",".join(
        [
            _quote(stamp),
            log.type,
            _detail(log),
            str(display_volume(amount, unit)) if amount else "",
            unit.value if amount else "",
            duration,
            _quote(log.notes or ""),
        ]
    )


def export_csv(
    logs: list[LogRecord], unit: VolumeUnit = VolumeUnit.ML, tz: tzinfo | None = None
) -> str:
    """Render records as CSV text, header first, in the order given."""
    lines = [",".join(EXPORT_HEADERS)]
    lines.extend(export_row(log, unit, tz) for log in logs)
    return "\n".join(lines)


def default_export_name(today: date | None = None) -> str:
    """File name used when no output path is given."""
    today = today or datetime.now().date()
    return f"baby_log_export_{today.isoformat()}.csv"


def write_export(
    path: Path, logs: list[LogRecord], unit: VolumeUnit = VolumeUnit.ML, tz: tzinfo | None = None
) -> int:
    """Write the export to disk.

    Returns:
        Number of records written
    """
    Path(path).write_text(export_csv(logs, unit, tz) + "\n", encoding="utf-8")
    return len(logs)

"""Import of logs exported by the legacy tracking app.

The legacy export is a CSV with the header::

    id,user_id,kind,created_at,started_at,ended_at,note,payload,feeding_kind,
    breast_side,session_seconds,feeding_amount,feeding_amount_ml,...

Each usable row becomes one log record appended through the sync gateway.
Rows are handled one at a time; a bad row is logged and skipped and never
aborts the batch. Importing the same file twice creates duplicates, which
``deduplication.remove_duplicate_logs`` cleans up.
"""

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .models import (
    BottleContents,
    DiaperLog,
    FeedingLog,
    FeedingSubType,
    ImportResult,
    LogRecord,
    PumpingLog,
    parse_instant,
)
from .sync_gateway import GatewayError, SyncGateway

logger = logging.getLogger(__name__)

LEGACY_HEADERS = [
    "id",
    "user_id",
    "kind",
    "created_at",
    "started_at",
    "ended_at",
    "note",
    "payload",
    "feeding_kind",
    "breast_side",
    "session_seconds",
    "feeding_amount",
    "feeding_unit",
    "feeding_amount_ml",
    "bottle_content",
    "diaper_kind",
    "expression_side",
    "expression_amount",
    "expression_unit",
    "expression_amount_ml",
]

IMPORTED_KINDS = {"feeding", "expression", "diaper"}


class ImportRowError(Exception):
    """Raised when a legacy row cannot be turned into a log record."""

    def __init__(self, reason: str, silent: bool = False):
        self.reason = reason
        self.silent = silent
        super().__init__(reason)


def parse_csv_line(text: str) -> list[str]:
    """Split one CSV line on commas outside double quotes.

    ``""`` inside a cell is an escaped quote.
    """
    cells: list[str] = []
    cell: list[str] = []
    quoted = False
    i = 0
    while i < len(text):
        char = text[i]
        if char == '"' and i + 1 < len(text) and text[i + 1] == '"':
            cell.append('"')
            i += 1
        elif char == '"':
            quoted = not quoted
        elif char == "," and not quoted:
            cells.append("".join(cell))
            cell = []
        else:
            cell.append(char)
        i += 1
    cells.append("".join(cell))
    return cells


def map_row(headers: list[str], cells: list[str]) -> dict[str, str]:
    """Pair cells with header names by position.

    Extra cells are ignored; missing trailing cells are simply absent.
    """
    return dict(zip(headers, cells))


def _float(value: str | None, default: float = 0.0) -> float:
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ImportRowError(f"not a number: {value!r}") from None


def _int(value: str | None, default: int = 0) -> int:
    return int(_float(value, default))


def normalize_row(row: dict[str, str], family_id: str, user_id: str | None) -> LogRecord:
    """Map one legacy row onto a log record.

    Args:
        row: Cells keyed by header name
        family_id: Family the record is imported into
        user_id: Identity stamped on the record

    Returns:
        The normalized record

    Raises:
        ImportRowError: If the row is of an unknown kind, has no readable
            timestamp or is a feeding with nothing to go on
    """
    kind = row.get("kind", "")
    if kind not in IMPORTED_KINDS:
        raise ImportRowError(f"unsupported kind {kind!r}", silent=True)

    raw_timestamp = row.get("started_at") or row.get("created_at") or ""
    try:
        timestamp = parse_instant(raw_timestamp)
    except ValueError:
        raise ImportRowError(f"invalid date {raw_timestamp!r}") from None

    base: dict[str, Any] = {
        "family_id": family_id,
        "user_id": user_id,
        "timestamp": timestamp,
    }
    if row.get("note"):
        base["notes"] = row["note"]

    try:
        if kind == "expression":
            return PumpingLog(
                **base,
                amount=_float(row.get("expression_amount_ml")),
                side=row.get("expression_side") or "both",
            )

        if kind == "diaper":
            sub_type = row.get("diaper_kind") or None
            if sub_type == "mixed":
                sub_type = "both"
            return DiaperLog(**base, sub_type=sub_type)

        return FeedingLog(**base, **_feeding_fields(row))
    except ValidationError as e:
        raise ImportRowError(f"invalid record: {e.error_count()} field error(s)") from e


def _feeding_fields(row: dict[str, str]) -> dict[str, Any]:
    feeding_kind = row.get("feeding_kind")

    if feeding_kind == FeedingSubType.BREAST.value:
        return {
            "sub_type": FeedingSubType.BREAST,
            "side": row.get("breast_side") or None,
            "total_duration": _int(row.get("session_seconds")),
        }
    if feeding_kind == FeedingSubType.BOTTLE.value:
        contents = (
            BottleContents.BREAST_MILK
            if row.get("bottle_content") == "breast_milk"
            else BottleContents.FORMULA
        )
        return {
            "sub_type": FeedingSubType.BOTTLE,
            "amount": _float(row.get("feeding_amount_ml")),
            "contents": contents,
        }

    # Older rows sometimes lack feeding_kind; infer it from what was recorded.
    if row.get("feeding_amount_ml"):
        return {
            "sub_type": FeedingSubType.BOTTLE,
            "amount": _float(row.get("feeding_amount_ml")),
        }
    if row.get("session_seconds"):
        return {
            "sub_type": FeedingSubType.BREAST,
            "total_duration": _int(row.get("session_seconds")),
        }
    raise ImportRowError("feeding without kind, amount or duration")


class LegacyImporter:
    """Imports legacy CSV exports through a sync gateway."""

    def __init__(self, gateway: SyncGateway):
        """Initialize importer.

        Args:
            gateway: Sync store each record is appended to
        """
        self.gateway = gateway

    def import_text(self, text: str, family_id: str, user_id: str | None = None) -> ImportResult:
        """Import every usable row of a CSV blob.

        Args:
            text: Whole CSV file contents including the header row
            family_id: Family to import into
            user_id: Identity stamped on each record

        Returns:
            ImportResult with the number of records written
        """
        lines = text.split("\n")
        header_line = lines[0].strip() if lines else ""
        if not header_line:
            return ImportResult(success=False, error="CSV file has no header row")

        headers = [h.strip() for h in header_line.split(",")]
        rows = [line.strip() for line in lines[1:] if line.strip()]
        logger.info("Starting import of %d legacy logs", len(rows))

        count = skipped = failed = 0
        for line_no, line in enumerate(rows, start=2):
            row = map_row(headers, parse_csv_line(line))
            try:
                record = normalize_row(row, family_id, user_id)
            except ImportRowError as e:
                skipped += 1
                if e.silent:
                    logger.debug("Skipping row %d: %s", line_no, e.reason)
                else:
                    logger.warning("Skipping row %d: %s", line_no, e.reason)
                continue

            try:
                self.gateway.append(record)
            except GatewayError as e:
                failed += 1
                logger.error("Row %d was not saved: %s", line_no, e)
                continue
            count += 1

        logger.info(
            "Imported %d logs (%d skipped, %d failed) out of %d", count, skipped, failed, len(rows)
        )
        return ImportResult(
            success=True, count=count, total=len(rows), skipped=skipped, failed=failed
        )

    def import_file(self, path: Path, family_id: str, user_id: str | None = None) -> ImportResult:
        """Import a legacy CSV file from disk.

        A missing or unreadable file is reported in the result, not raised.
        """
        try:
            text = load_legacy_csv(path)
        except OSError as e:
            logger.error("Import failed: %s", e)
            return ImportResult(success=False, error=f"Could not read {path}: {e.strerror or e}")
        return self.import_text(text, family_id, user_id)


def load_legacy_csv(path: Path) -> str:
    """Read a legacy export, tolerating a UTF-8 byte order mark."""
    return Path(path).read_text(encoding="utf-8-sig")


def import_legacy_logs(
    text: str, family_id: str, user_id: str | None, gateway: SyncGateway
) -> ImportResult:
    """Import a CSV blob; see ``LegacyImporter.import_text``."""
    return LegacyImporter(gateway).import_text(text, family_id, user_id)

"""Content-based duplicate removal for a family's logs.

Two records are duplicates when they share a fingerprint of
(type, timestamp, subType, amount, totalDuration, side). The id, userId and
notes are not part of it, so genuinely separate events that coincide on all
six fields collapse to one. That trade-off is accepted: the sweep exists to
clean up repeated imports of the same file.
"""

import logging
from enum import Enum
from typing import Any

from .models import DedupResult, LogRecord, format_instant
from .sync_gateway import GatewayError, SyncGateway

logger = logging.getLogger(__name__)

Fingerprint = tuple[str, str, str, float, float, str]


def _text(value: Any) -> str:
    if isinstance(value, Enum):
        return value.value
    return value or ""


def fingerprint(record: LogRecord) -> Fingerprint:
    """Content key used to detect duplicate records."""
    return (
        _text(record.type),
        format_instant(record.timestamp),
        _text(getattr(record, "sub_type", None)),
        getattr(record, "amount", None) or 0,
        getattr(record, "total_duration", None) or 0,
        _text(getattr(record, "side", None)),
    )


def find_duplicates(records: list[LogRecord]) -> list[LogRecord]:
    """Every record whose fingerprint was already seen earlier in the list.

    The first record per fingerprint, in retrieval order, is the one kept.
    """
    seen: set[Fingerprint] = set()
    duplicates: list[LogRecord] = []
    for record in records:
        key = fingerprint(record)
        if key in seen:
            duplicates.append(record)
        else:
            seen.add(key)
    return duplicates


def remove_duplicate_logs(family_id: str, gateway: SyncGateway) -> DedupResult:
    """Delete duplicate logs for a family, one at a time.

    Gateway failures are reported in the result rather than raised. A failed
    delete stops the sweep; records deleted before it stay deleted.

    Args:
        family_id: Family whose logs are scanned
        gateway: Sync store to query and delete through

    Returns:
        DedupResult with the number of records deleted
    """
    logger.info("Starting deduplication for family: %s", family_id)
    try:
        records = gateway.query(family_id)
    except GatewayError as e:
        logger.error("Deduplication failed: %s", e)
        return DedupResult(success=False, error=str(e))

    duplicates = find_duplicates(records)
    logger.info("Found %d duplicates out of %d total logs", len(duplicates), len(records))

    deleted = 0
    for record in duplicates:
        if record.id is None:
            continue
        try:
            gateway.delete(record.id)
        except GatewayError as e:
            logger.error("Deduplication stopped after %d deletions: %s", deleted, e)
            return DedupResult(
                success=False, deleted_count=deleted, scanned=len(records), error=str(e)
            )
        deleted += 1

    return DedupResult(success=True, deleted_count=deleted, scanned=len(records))

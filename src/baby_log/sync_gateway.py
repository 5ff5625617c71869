"""Shared log collection access.

The sync gateway is the single source of truth for log records. Every write
goes through ``append``/``delete`` and every read comes back through
``query`` or a ``subscribe`` snapshot. Use ``create_sync_gateway()`` to get a
backend based on configuration.
"""

import logging
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Protocol
from uuid import uuid4

from pydantic import ValidationError

from .data_store import DataStore
from .models import LogRecord, parse_log

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[list[LogRecord]], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class BackendType(str, Enum):
    """Sync store backend types."""

    LOCAL = "local"
    FIRESTORE = "firestore"


class GatewayError(Exception):
    """Raised when the sync store rejects an operation."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Sync store {operation} failed: {detail}")


class SyncGateway(Protocol):
    """Protocol defining the sync store interface."""

    def append(self, record: LogRecord) -> str: ...
    def subscribe(
        self,
        family_id: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Unsubscribe: ...
    def delete(self, log_id: str) -> None: ...
    def query(self, family_id: str) -> list[LogRecord]: ...


def documents_to_records(
    documents: list[tuple[str, dict]], family_id: str | None = None
) -> list[LogRecord]:
    """Turn ``(id, document)`` pairs into records, skipping unreadable ones.

    Args:
        documents: Raw documents in retrieval order
        family_id: When given, only documents for this family are kept

    Returns:
        Parsed records in the same order
    """
    records: list[LogRecord] = []
    for log_id, document in documents:
        if family_id is not None and document.get("familyId") != family_id:
            continue
        try:
            records.append(parse_log(document, log_id))
        except ValidationError as e:
            logger.warning("Skipping unreadable log document %s: %s", log_id, e)
    return records


class LocalSyncGateway:
    """Sync store kept in a JSON file on this device.

    Subscribers are notified synchronously after every write, which is enough
    to drive the same replace-on-snapshot flow a remote store would.
    """

    def __init__(self, data_store: DataStore | None = None):
        self.data_store = data_store or DataStore()
        self._listeners: dict[int, tuple[str, SnapshotCallback, ErrorCallback | None]] = {}
        self._next_listener = 0

    def _load(self) -> dict[str, dict]:
        try:
            return self.data_store.load_log_documents()
        except (OSError, ValueError) as e:
            raise GatewayError("read", str(e)) from e

    def _save(self, operation: str, documents: dict[str, dict]) -> None:
        try:
            self.data_store.save_log_documents(documents)
        except (OSError, TypeError) as e:
            raise GatewayError(operation, str(e)) from e

    def _notify(self, documents: dict[str, dict]) -> None:
        """Push the new collection to every listener.

        The write has already landed, so a failing listener is reported to its
        own error callback (or logged) and never fails the write.
        """
        for family_id, on_snapshot, on_error in list(self._listeners.values()):
            try:
                on_snapshot(documents_to_records(list(documents.items()), family_id))
            except Exception as e:
                if on_error is None:
                    logger.error("Snapshot listener failed: %s", e, exc_info=True)
                else:
                    on_error(e)

    def append(self, record: LogRecord) -> str:
        """Add a record and return the id assigned to it.

        Raises:
            GatewayError: If the collection cannot be written
        """
        documents = self._load()
        log_id = uuid4().hex
        documents[log_id] = record.to_document()
        self._save("append", documents)
        self._notify(documents)
        return log_id

    def delete(self, log_id: str) -> None:
        """Remove a record. Deleting an id that is already gone is a no-op.

        Raises:
            GatewayError: If the collection cannot be written
        """
        documents = self._load()
        if documents.pop(log_id, None) is None:
            return
        self._save("delete", documents)
        self._notify(documents)

    def query(self, family_id: str) -> list[LogRecord]:
        """Fetch every record for a family in retrieval order.

        Raises:
            GatewayError: If the collection cannot be read
        """
        return documents_to_records(list(self._load().items()), family_id)

    def subscribe(
        self,
        family_id: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Unsubscribe:
        """Receive the family's full record list now and after every change.

        Returns:
            Callable that stops further snapshots
        """
        key = self._next_listener
        self._next_listener += 1
        self._listeners[key] = (family_id, on_snapshot, on_error)

        try:
            on_snapshot(self.query(family_id))
        except Exception as e:
            if on_error is None:
                raise
            on_error(e)

        def unsubscribe() -> None:
            self._listeners.pop(key, None)

        return unsubscribe


def create_sync_gateway(
    backend: BackendType = BackendType.LOCAL,
    data_store: DataStore | None = None,
    app_id: str = "baby-log-v1",
    credentials_path: Path | None = None,
) -> SyncGateway:
    """Create a sync gateway with the specified backend.

    Args:
        backend: Which backend to use (local or firestore)
        data_store: Local data store (used by the local backend)
        app_id: Application namespace inside the Firestore project
        credentials_path: Service account JSON for Firestore; application
                          default credentials are used when omitted

    Returns:
        A LocalSyncGateway or FirestoreSyncGateway instance

    Example:
        # Local, file-backed store
        gateway = create_sync_gateway()

        # Shared Firestore collection
        gateway = create_sync_gateway(
            BackendType.FIRESTORE,
            credentials_path=Path("./service-account.json"),
        )
    """
    if backend == BackendType.FIRESTORE:
        from .firestore_gateway import FirestoreSyncGateway, init_firestore_client

        return FirestoreSyncGateway(
            client=init_firestore_client(credentials_path), app_id=app_id
        )
    else:
        return LocalSyncGateway(data_store=data_store)

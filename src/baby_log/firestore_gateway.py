"""Firestore-backed sync gateway.

Logs live in the shared collection ``artifacts/{app_id}/public/data/baby_logs``
and are partitioned by their ``familyId`` field.
"""

import logging
from pathlib import Path
from typing import Any

import firebase_admin
from firebase_admin import credentials, firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from .models import LogRecord
from .sync_gateway import (
    ErrorCallback,
    GatewayError,
    SnapshotCallback,
    Unsubscribe,
    documents_to_records,
)

logger = logging.getLogger(__name__)


def init_firestore_client(credentials_path: Path | None = None) -> Any:
    """Initialize the default Firebase app once and return a Firestore client.

    Raises:
        GatewayError: If no identity can be established
    """
    try:
        app = firebase_admin.get_app()
    except ValueError:
        try:
            cred = (
                credentials.Certificate(str(credentials_path))
                if credentials_path
                else credentials.ApplicationDefault()
            )
            app = firebase_admin.initialize_app(cred)
        except Exception as e:
            logger.error("Firebase initialization failed: %s", e, exc_info=True)
            raise GatewayError("auth", str(e)) from e
    return firestore.client(app)


class FirestoreSyncGateway:
    """Sync store shared between devices through Cloud Firestore."""

    def __init__(self, client: Any, app_id: str = "baby-log-v1"):
        """Initialize the gateway.

        Args:
            client: A ``google.cloud.firestore.Client``
            app_id: Application namespace inside the project
        """
        self.client = client
        self.app_id = app_id

    @property
    def collection_path(self) -> str:
        return f"artifacts/{self.app_id}/public/data/baby_logs"

    def _collection(self) -> Any:
        return self.client.collection(self.collection_path)

    def _family_query(self, family_id: str) -> Any:
        return self._collection().where(filter=FieldFilter("familyId", "==", family_id))

    def append(self, record: LogRecord) -> str:
        """Add a record and return its new document id."""
        try:
            _, doc_ref = self._collection().add(record.to_document())
        except Exception as e:
            logger.error("Firestore append failed (%s): %s", self.collection_path, e, exc_info=True)
            raise GatewayError("append", str(e)) from e
        return doc_ref.id

    def delete(self, log_id: str) -> None:
        """Delete a record by document id."""
        try:
            self._collection().document(log_id).delete()
        except Exception as e:
            logger.error("Firestore delete of %s failed: %s", log_id, e, exc_info=True)
            raise GatewayError("delete", str(e)) from e

    def query(self, family_id: str) -> list[LogRecord]:
        """Fetch every record for a family in retrieval order."""
        try:
            documents = [(doc.id, doc.to_dict()) for doc in self._family_query(family_id).stream()]
        except Exception as e:
            logger.error("Firestore query for family %s failed: %s", family_id, e, exc_info=True)
            raise GatewayError("query", str(e)) from e
        return documents_to_records(documents, family_id)

    def subscribe(
        self,
        family_id: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Unsubscribe:
        """Stream full snapshots of the family's records until unsubscribed."""

        def handle(docs: list[Any], changes: Any, read_time: Any) -> None:
            try:
                records = documents_to_records([(doc.id, doc.to_dict()) for doc in docs], family_id)
                on_snapshot(records)
            except Exception as e:
                logger.error("Snapshot handling failed: %s", e, exc_info=True)
                if on_error is not None:
                    on_error(e)

        try:
            watch = self._family_query(family_id).on_snapshot(handle)
        except Exception as e:
            logger.error("Firestore subscribe failed: %s", e, exc_info=True)
            raise GatewayError("subscribe", str(e)) from e
        return watch.unsubscribe

"""Shared test fixtures for Baby Log."""

from datetime import datetime, timezone

import pytest

from baby_log.data_store import DataStore
from baby_log.inventory_manager import InventoryManager
from baby_log.log_manager import LogManager
from baby_log.sync_gateway import GatewayError, LocalSyncGateway

FAMILY = "test-family"
USER = "parent-1"


@pytest.fixture
def temp_data_dir(tmp_path):
    """Create a temporary data directory."""
    data_dir = tmp_path / "test_data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def data_store(temp_data_dir):
    """Create a DataStore with temporary directory."""
    return DataStore(data_dir=temp_data_dir)


@pytest.fixture
def gateway(data_store):
    """Create a file-backed sync gateway."""
    return LocalSyncGateway(data_store=data_store)


@pytest.fixture
def log_manager(gateway):
    """Create a LogManager for the test family."""
    return LogManager(gateway, FAMILY, USER)


@pytest.fixture
def inventory_manager(data_store):
    """Create an InventoryManager with temporary storage."""
    return InventoryManager(data_store=data_store)


@pytest.fixture
def now():
    """A fixed instant for clock-driven tests."""
    return datetime(2025, 11, 24, 12, 0, 0, tzinfo=timezone.utc)


class FlakyGateway(LocalSyncGateway):
    """Local gateway whose appends or deletes fail on chosen calls."""

    def __init__(self, data_store, fail_appends=(), fail_deletes=()):
        super().__init__(data_store=data_store)
        self.fail_appends = set(fail_appends)
        self.fail_deletes = set(fail_deletes)
        self.append_calls = 0
        self.delete_calls = 0

    def append(self, record):
        self.append_calls += 1
        if self.append_calls in self.fail_appends:
            raise GatewayError("append", "permission denied")
        return super().append(record)

    def delete(self, log_id):
        self.delete_calls += 1
        if self.delete_calls in self.fail_deletes:
            raise GatewayError("delete", "permission denied")
        super().delete(log_id)


@pytest.fixture
def flaky_gateway_factory(data_store):
    """Build a FlakyGateway sharing the test data store."""

    def factory(fail_appends=(), fail_deletes=()):
        return FlakyGateway(data_store, fail_appends=fail_appends, fail_deletes=fail_deletes)

    return factory

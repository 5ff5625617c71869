"""Baby Log - feeding, pumping, diaper and sleep tracking shared by a family."""

from .analytics import Analytics
from .config import ConfigManager
from .data_import import LegacyImporter, import_legacy_logs
from .data_store import DataStore
from .deduplication import find_duplicates, remove_duplicate_logs
from .inventory_manager import InventoryItemNotFoundError, InventoryManager
from .log_manager import LogManager, LogValidationError
from .manual_entry import ManualBreastEntry
from .models import (
    AllTimeStats,
    BottleContents,
    BreastSide,
    CheckOutAction,
    DailyStats,
    DedupResult,
    DiaperLog,
    DiaperStatus,
    FeedingLog,
    FeedingSubType,
    ImportResult,
    InventoryItem,
    LogRecord,
    LogType,
    Preferences,
    PumpingLog,
    SleepLog,
    TimerSide,
    parse_log,
)
from .output_formatter import OutputFormatter
from .sync_gateway import BackendType, GatewayError, LocalSyncGateway, create_sync_gateway
from .timer import BreastfeedingTimer, TimerState
from .units import VolumeUnit, adjust_volume, display_volume

__version__ = "0.1.0"

__all__ = [
    "AllTimeStats",
    "Analytics",
    "adjust_volume",
    "BackendType",
    "BottleContents",
    "BreastfeedingTimer",
    "BreastSide",
    "CheckOutAction",
    "ConfigManager",
    "create_sync_gateway",
    "DailyStats",
    "DataStore",
    "DedupResult",
    "DiaperLog",
    "DiaperStatus",
    "display_volume",
    "FeedingLog",
    "FeedingSubType",
    "find_duplicates",
    "GatewayError",
    "import_legacy_logs",
    "ImportResult",
    "InventoryItem",
    "InventoryItemNotFoundError",
    "InventoryManager",
    "LegacyImporter",
    "LocalSyncGateway",
    "LogManager",
    "LogRecord",
    "LogType",
    "LogValidationError",
    "ManualBreastEntry",
    "OutputFormatter",
    "parse_log",
    "Preferences",
    "PumpingLog",
    "remove_duplicate_logs",
    "SleepLog",
    "TimerSide",
    "TimerState",
    "VolumeUnit",
]

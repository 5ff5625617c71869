"""Local persistence for Baby Log.

Everything that lives on the device is kept here as JSON files: the milk
inventory, the breastfeeding timer blob, per-device preferences and, for the
local sync backend, the log documents themselves.
"""

import json
from datetime import date, datetime
from pathlib import Path
from typing import Any
from uuid import UUID

from .models import InventoryItem, Preferences

TIMER_STATE_KEY = "breastTimerState"


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for our data types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, date):
            return obj.isoformat()
        return super().default(obj)


def json_decoder(data: dict[str, Any]) -> dict[str, Any]:
    """Decode inventory JSON back to Python objects."""
    for key, value in data.items():
        if isinstance(value, str):
            if key == "id":
                try:
                    data[key] = UUID(value)
                except ValueError:
                    pass
            elif key == "pump_date":
                try:
                    data[key] = datetime.fromisoformat(value)
                except ValueError:
                    pass
            elif key == "freeze_date":
                try:
                    data[key] = date.fromisoformat(value)
                except ValueError:
                    pass
    return data


class DataStore:
    """Manages JSON file persistence for device-local data."""

    def __init__(self, data_dir: Path | None = None):
        """Initialize data store.

        Args:
            data_dir: Directory for data files. Defaults to ./data
        """
        self.data_dir = data_dir or Path.cwd() / "data"
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _inventory_path(self) -> Path:
        """Path to milk inventory file."""
        return self.data_dir / "inventory.json"

    def _timer_path(self) -> Path:
        """Path to breastfeeding timer state file."""
        return self.data_dir / "timer_state.json"

    def _preferences_path(self) -> Path:
        """Path to preferences file."""
        return self.data_dir / "preferences.json"

    def _logs_path(self) -> Path:
        """Path to the local log collection."""
        return self.data_dir / "baby_logs.json"

    def _read_json(self, path: Path) -> Any:
        with open(path) as f:
            return json.load(f)

    def _write_json(self, path: Path, data: Any) -> None:
        with open(path, "w") as f:
            json.dump(data, f, cls=JSONEncoder, indent=2)

    # --- Inventory Operations ---

    def load_inventory(self) -> list[InventoryItem]:
        """Load stored milk inventory.

        Returns:
            List of inventory items in insertion order, empty if none saved
        """
        path = self._inventory_path()
        if not path.exists():
            return []

        with open(path) as f:
            data = json.load(f, object_hook=json_decoder)

        return [InventoryItem(**item) for item in data.get("items", [])]

    def save_inventory(self, items: list[InventoryItem]) -> None:
        """Save milk inventory.

        Args:
            items: Inventory items to persist
        """
        data = {
            "last_updated": datetime.now(),
            "items": [item.model_dump() for item in items],
        }
        self._write_json(self._inventory_path(), data)

    # --- Timer Operations ---

    def load_timer_state(self) -> dict[str, Any] | None:
        """Load the serialized breastfeeding timer, if one was saved."""
        path = self._timer_path()
        if not path.exists():
            return None
        return self._read_json(path).get(TIMER_STATE_KEY)

    def save_timer_state(self, blob: dict[str, Any]) -> None:
        """Persist the serialized breastfeeding timer."""
        self._write_json(self._timer_path(), {TIMER_STATE_KEY: blob})

    # --- Preference Operations ---

    def _load_preference_map(self) -> dict[str, Any]:
        path = self._preferences_path()
        if not path.exists():
            return {}
        return self._read_json(path)

    def get_preference(self, key: str, default: Any = None) -> Any:
        """Read a single preference key.

        Args:
            key: Preference key, e.g. ``familyId``
            default: Value returned when the key was never written

        Returns:
            Stored value or default
        """
        return self._load_preference_map().get(key, default)

    def set_preference(self, key: str, value: Any) -> None:
        """Write a single preference key, leaving the others untouched."""
        prefs = self._load_preference_map()
        prefs[key] = value
        self._write_json(self._preferences_path(), prefs)

    def load_preferences(self) -> Preferences:
        """Load every preference key, falling back to defaults per key."""
        return Preferences(**self._load_preference_map())

    def save_preferences(self, preferences: Preferences) -> None:
        """Save all preference keys at once."""
        self._write_json(
            self._preferences_path(), preferences.model_dump(by_alias=True, mode="json")
        )

    # --- Log Document Operations ---

    def load_log_documents(self) -> dict[str, dict[str, Any]]:
        """Load the local log collection as ``id -> document``.

        Insertion order is retrieval order.
        """
        path = self._logs_path()
        if not path.exists():
            return {}
        return self._read_json(path).get("logs", {})

    def save_log_documents(self, documents: dict[str, dict[str, Any]]) -> None:
        """Save the local log collection."""
        self._write_json(self._logs_path(), {"logs": documents})

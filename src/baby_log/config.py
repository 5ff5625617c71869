"""Configuration management for Baby Log."""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass
class DataConfig:
    """Data storage configuration."""

    storage_dir: Path
    backend: str = "local"


@dataclass
class SyncConfig:
    """Remote sync configuration."""

    app_id: str = "baby-log-v1"
    credentials_path: Path | None = None


@dataclass
class DefaultsConfig:
    """Default values configuration."""

    family_id: str = "demo-family"
    user_id: str = "local-user"
    volume_unit: str = "ml"
    baby_name: str = "Baby Log"


@dataclass
class Config:
    """Complete application configuration."""

    data: DataConfig
    sync: SyncConfig
    defaults: DefaultsConfig


class ConfigManager:
    """Manages application configuration from TOML files."""

    def __init__(self, config_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            config_path: Optional explicit path to config file.
                        If not provided, searches standard locations.
        """
        self.config_path = config_path or self._find_config()
        self._config = self._load_config()

    @property
    def data(self) -> DataConfig:
        """Get data configuration."""
        return self._config.data

    @property
    def sync(self) -> SyncConfig:
        """Get sync configuration."""
        return self._config.sync

    @property
    def defaults(self) -> DefaultsConfig:
        """Get defaults configuration."""
        return self._config.defaults

    def _find_config(self) -> Path:
        """Find config file in standard locations."""
        locations = [
            Path.cwd() / "config.toml",
            Path.home() / ".config" / "baby-log" / "config.toml",
            Path.home() / ".baby-log" / "config.toml",
        ]

        for loc in locations:
            if loc.exists():
                return loc

        return Path.home() / ".config" / "baby-log" / "config.toml"

    def _load_config(self) -> Config:
        """Load configuration from TOML file."""
        if not self.config_path.exists():
            return self._default_config()

        with open(self.config_path, "rb") as f:
            data = tomllib.load(f)

        data_section = data.get("data", {})
        sync_section = data.get("sync", {})
        defaults_section = data.get("defaults", {})
        credentials = sync_section.get("credentials_path")

        return Config(
            data=DataConfig(
                storage_dir=Path(
                    data_section.get("storage_dir", "~/baby-log/data")
                ).expanduser(),
                backend=data_section.get("backend", "local"),
            ),
            sync=SyncConfig(
                app_id=sync_section.get("app_id", "baby-log-v1"),
                credentials_path=Path(credentials).expanduser() if credentials else None,
            ),
            defaults=DefaultsConfig(
                family_id=defaults_section.get("family_id", "demo-family"),
                user_id=defaults_section.get("user_id", "local-user"),
                volume_unit=defaults_section.get("volume_unit", "ml"),
                baby_name=defaults_section.get("baby_name", "Baby Log"),
            ),
        )

    def _default_config(self) -> Config:
        """Return default configuration."""
        return Config(
            data=DataConfig(storage_dir=Path.home() / "baby-log" / "data"),
            sync=SyncConfig(),
            defaults=DefaultsConfig(),
        )

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get config value by dot-notation path.

        Args:
            key_path: Dot-separated path like 'data.storage_dir'
            default: Default value if path not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split(".")
        value: Any = self._config

        for key in keys:
            if hasattr(value, key):
                value = getattr(value, key)
            elif isinstance(value, dict):
                value = value.get(key)
                if value is None:
                    return default
            else:
                return default

        return value if value is not None else default

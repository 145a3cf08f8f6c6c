"""
LiveSync configuration management.

Provides centralized configuration with validation using Pydantic.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from livesync.core.errors import ConfigurationError

DEFAULT_HOME = Path.home() / ".livesync"
DEFAULT_CONFIG_PATH = DEFAULT_HOME / "config.json"
DEFAULT_FTP_PORT = 21


def normalize_extension(value: str) -> str:
    """Return the extension with exactly one leading dot."""
    value = value.strip()
    if not value or value == ".":
        raise ValueError("File extension must not be empty")
    return "." + value.lstrip(".")


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file_enabled: bool = True
    console_enabled: bool = True
    json_format: bool = False
    log_directory: Path = Field(default_factory=lambda: DEFAULT_HOME / "logs")

    @field_validator("log_directory", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return Path(v).expanduser().resolve()


class LocationType(str, Enum):
    """Kind of storage behind a location."""

    LOCAL = "Local"
    FILE_SHARE = "FileShare"
    FTP = "Ftp"

    @classmethod
    def from_string(cls, value: str) -> LocationType:
        value_lower = value.strip().lower().replace("_", "").replace("-", "")
        for kind in cls:
            if kind.value.lower() == value_lower:
                return kind
        raise ValueError(f"Unknown location type: {value}")


class Location(BaseModel):
    """A storage endpoint participating in a sync setting."""

    path: str = Field(min_length=1)
    type: LocationType = LocationType.LOCAL
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    ftp_host: str | None = None
    ftp_port: int | None = Field(default=None, ge=1, le=65535)
    ftp_timezone: int = Field(default=0, ge=-12, le=14)
    # cache extension -> extension at this location
    rename_mappings: dict[str, str] = Field(default_factory=dict)

    @field_validator("type", mode="before")
    @classmethod
    def parse_type(cls, v: Any) -> Any:
        if isinstance(v, str) and not isinstance(v, LocationType):
            return LocationType.from_string(v)
        return v

    @field_validator("rename_mappings", mode="before")
    @classmethod
    def normalize_mappings(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {normalize_extension(k): normalize_extension(val) for k, val in v.items()}
        return v

    @model_validator(mode="after")
    def check_ftp_fields(self) -> Location:
        if self.type == LocationType.FTP:
            if not self.ftp_host:
                raise ValueError("ftp_host is required for FTP locations")
            if self.ftp_port is None:
                self.ftp_port = DEFAULT_FTP_PORT
        elif self.ftp_host:
            raise ValueError(f"ftp_host is only valid for FTP locations, not {self.type.value}")
        return self

    def describe(self) -> str:
        if self.type == LocationType.FTP:
            return f"ftp://{self.ftp_host}:{self.ftp_port}{self.path}"
        return self.path


class SyncSetting(BaseModel):
    """A named group of locations synchronized through one cache subdirectory."""

    name: str = Field(min_length=1)
    file_extensions: list[str] = Field(default_factory=list)
    locations: list[Location] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        if "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError(f"Sync setting name cannot be used as a directory name: {v!r}")
        return v

    @field_validator("file_extensions", mode="before")
    @classmethod
    def normalize_extensions(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple, set)):
            return [normalize_extension(ext) for ext in v]
        return v


class SyncConfiguration(BaseModel):
    """Engine configuration shared by every sync setting."""

    cache_directory: Path = Field(default_factory=lambda: DEFAULT_HOME / "cache")
    max_backups: int = Field(default=5, ge=0)
    sync_settings: list[SyncSetting] = Field(default_factory=list)
    interval_seconds: int = Field(default=60, ge=1)
    cycle_timeout_seconds: float = Field(default=120.0, gt=0)
    ftp_timeout_seconds: float = Field(default=30.0, gt=0)
    status_file: Path = Field(default_factory=lambda: DEFAULT_HOME / "status.json")

    @field_validator("cache_directory", "status_file", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("sync_settings", mode="before")
    @classmethod
    def settings_from_mapping(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return [{**body, "name": name} for name, body in v.items()]
        return v

    @model_validator(mode="after")
    def check_unique_names(self) -> SyncConfiguration:
        seen: set[str] = set()
        for setting in self.sync_settings:
            if setting.name in seen:
                raise ValueError(f"Duplicate sync setting name: {setting.name}")
            seen.add(setting.name)
        return self


class LiveSyncConfig(BaseModel):
    """Main LiveSync configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    sync: SyncConfiguration = Field(default_factory=SyncConfiguration)

    @classmethod
    def load(cls, config_path: Path | None = None) -> LiveSyncConfig:
        """Load configuration from file or create default."""
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        if not config_path.exists():
            return cls()

        try:
            with open(config_path, encoding="utf-8") as f:
                data = json.load(f)
            return cls.model_validate(data)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"{config_path}: invalid JSON: {e}") from e
        except ValidationError as e:
            raise ConfigurationError(f"{config_path}: {e}") from e

    def save(self, config_path: Path | None = None) -> None:
        """Save configuration to file."""
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2, default=str)

    def ensure_directories(self) -> None:
        """Create all required directories."""
        self.logging.log_directory.mkdir(parents=True, exist_ok=True)
        self.sync.cache_directory.mkdir(parents=True, exist_ok=True)
        self.sync.status_file.parent.mkdir(parents=True, exist_ok=True)

    def validate_settings(self) -> list[str]:
        """
        Check structural invariants the models do not enforce on load.
        Returns a list of problems (empty if valid).
        """
        problems: list[str] = []
        for setting in self.sync.sync_settings:
            if len(setting.locations) < 2:
                problems.append(
                    f"{setting.name}: at least two locations are required, "
                    f"found {len(setting.locations)}"
                )
            if not setting.file_extensions:
                problems.append(f"{setting.name}: no file extensions configured")
        return problems

    def get_setting(self, name: str) -> SyncSetting:
        for setting in self.sync.sync_settings:
            if setting.name == name:
                return setting
        raise ConfigurationError(f"Unknown sync setting: {name}")


def get_default_config() -> LiveSyncConfig:
    """Get the default configuration."""
    return LiveSyncConfig()


def load_config(config_path: Path | None = None) -> LiveSyncConfig:
    """Load or create configuration."""
    config = LiveSyncConfig.load(config_path)
    config.ensure_directories()
    return config

"""Configuration management for devlog."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
import os
from typing import Any, Mapping

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_FILE_ENV = "DEVLOG_CONFIG"


class ConfigLoadError(RuntimeError):
    """Raised when the optional YAML configuration file cannot be used."""


class DevlogSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    repo_path: Path = Field(
        default_factory=lambda: Path.home() / "developer_repo",
        validation_alias="DEVLOG_REPO_PATH",
    )
    logs_subdir: str = Field(default="developer_logs", validation_alias="DEVLOG_LOGS_SUBDIR")
    remote_url: str | None = Field(default=None, validation_alias="DEVLOG_REMOTE_URL")
    git_path: str | None = Field(default=None, validation_alias="DEVLOG_GIT_PATH")
    sync_interval_seconds: float = Field(default=3600.0, validation_alias="DEVLOG_SYNC_INTERVAL")
    command_timeout_seconds: float = Field(default=120.0, validation_alias="DEVLOG_COMMAND_TIMEOUT")
    shutdown_timeout_seconds: float = Field(default=30.0, validation_alias="DEVLOG_SHUTDOWN_TIMEOUT")
    rollover_at_midnight: bool = Field(default=True, validation_alias="DEVLOG_ROLLOVER")
    log_level: str = Field(default="INFO", validation_alias="DEVLOG_LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "DEVLOG_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("logs_subdir")
    @classmethod
    def _validate_logs_subdir(cls, value: str) -> str:
        normalized = value.strip().strip("/\\")
        if not normalized or Path(normalized).is_absolute() or ".." in Path(normalized).parts:
            raise ValueError("DEVLOG_LOGS_SUBDIR must be a relative path inside the repository")
        return normalized

    @field_validator("remote_url")
    @classmethod
    def _blank_remote_is_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("sync_interval_seconds", "command_timeout_seconds", "shutdown_timeout_seconds")
    @classmethod
    def _validate_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Intervals and timeouts must be > 0 seconds")
        return value

    @property
    def logs_dir(self) -> Path:
        return self.repo_path / self.logs_subdir

    @classmethod
    def from_values(cls, values: Mapping[str, Any]) -> DevlogSettings:
        """Build settings from field names (repo_path) or environment names (DEVLOG_REPO_PATH)."""

        aliases = {
            name: field.validation_alias
            for name, field in cls.model_fields.items()
            if isinstance(field.validation_alias, str)
        }
        return cls(**{aliases.get(str(key), str(key)): value for key, value in values.items()})


def load_settings_file(path: Path) -> DevlogSettings:
    """Build settings from a YAML file; its keys take precedence over the environment."""

    path = Path(path).expanduser()
    try:
        document = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigLoadError(f"Cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigLoadError(f"Failed to parse YAML in {path}: {exc}") from exc

    if document is None:
        document = {}
    if not isinstance(document, dict):
        raise ConfigLoadError(f"Config file {path} must contain a mapping")

    try:
        return DevlogSettings.from_values(document)
    except ValidationError as exc:
        raise ConfigLoadError(f"Config validation error in {path}: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings() -> DevlogSettings:
    """Return cached settings instance."""

    config_file = os.environ.get(CONFIG_FILE_ENV, "").strip()
    settings = load_settings_file(Path(config_file)) if config_file else DevlogSettings()
    settings.repo_path = settings.repo_path.expanduser().resolve()
    return settings


__all__ = ["ConfigLoadError", "DevlogSettings", "get_settings", "load_settings_file"]

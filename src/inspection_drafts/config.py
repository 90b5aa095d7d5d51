"""Configuration management for the inspection draft store."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

_config_logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")


class StorageSettings(BaseModel):
    sqlite_path: str = Field(default="./data/inspections.sqlite")
    sqlite_wal: bool = Field(default=True)
    quota_bytes: int = Field(
        default=5 * 1024 * 1024,
        ge=0,
        description="Maximum total size of stored values. 0 disables the limit.",
    )
    export_path: str = Field(default="./data/exports")


class SyncSettings(BaseModel):
    enabled: bool = Field(default=True)
    api_url: str | None = Field(
        default="http://localhost:3001/api",
        description="Base URL of the inspections REST backend (without /inspections).",
    )
    timeout_seconds: float = Field(default=30.0, ge=0.1, le=300)
    token: str | None = Field(default=None, description="Bearer credential issued at login")
    user_id: str | None = Field(default=None, description="Owner of the record store namespace")

    @field_validator("api_url")
    @classmethod
    def _validate_api_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        candidate = value.strip().rstrip("/")
        if not candidate:
            return None
        if not candidate.lower().startswith(("http://", "https://")):
            raise ValueError("api_url must use http or https")
        return candidate


class SessionSettings(BaseModel):
    autosave_interval_seconds: float = Field(default=30.0, ge=0.01, le=3600)
    form_path: str = Field(default="./form.yaml")


class Settings(BaseModel):
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)


ENV_KEYS = {
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
    "sqlite_path": "STORAGE_SQLITE_PATH",
    "sqlite_wal": "STORAGE_SQLITE_WAL",
    "quota_bytes": "STORAGE_QUOTA_BYTES",
    "export_path": "EXPORT_PATH",
    "sync_enabled": "SYNC_ENABLED",
    "api_url": "SYNC_API_URL",
    "timeout": "SYNC_TIMEOUT_SECONDS",
    "token": "SYNC_TOKEN",
    "user_id": "SYNC_USER_ID",
    "autosave_interval": "AUTOSAVE_INTERVAL_SECONDS",
    "form_path": "FORM_PATH",
}

_TRUE_VALUES = frozenset({"1", "true", "yes"})


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(path: str) -> str:
    candidate = Path(path)
    root = _project_root().resolve()
    if candidate.is_absolute():
        resolved = candidate.resolve()
    else:
        resolved = (root / candidate).resolve()
    if not resolved.is_relative_to(root):
        raise ValueError(f"Path traversal detected: '{path}' resolves outside project root")
    return str(resolved)


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        _config_logger.warning(
            "Invalid float value for %s: %r, using default %s", key, value, default
        )
        return default


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")
    log_file_env = os.getenv(ENV_KEYS["log_file"])

    settings_data: dict[str, object] = {
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": _resolve_path(log_file_env) if log_file_env else None,
        },
        "storage": {
            "sqlite_path": _resolve_path(
                os.getenv(ENV_KEYS["sqlite_path"], StorageSettings().sqlite_path)
            ),
            "sqlite_wal": _env_bool(ENV_KEYS["sqlite_wal"], StorageSettings().sqlite_wal),
            "quota_bytes": _env_int(ENV_KEYS["quota_bytes"], StorageSettings().quota_bytes),
            "export_path": _resolve_path(
                os.getenv(ENV_KEYS["export_path"], StorageSettings().export_path)
            ),
        },
        "sync": {
            "enabled": _env_bool(ENV_KEYS["sync_enabled"], SyncSettings().enabled),
            "api_url": os.getenv(ENV_KEYS["api_url"], SyncSettings().api_url),
            "timeout_seconds": _env_float(ENV_KEYS["timeout"], SyncSettings().timeout_seconds),
            "token": os.getenv(ENV_KEYS["token"]) or None,
            "user_id": os.getenv(ENV_KEYS["user_id"]) or None,
        },
        "session": {
            "autosave_interval_seconds": _env_float(
                ENV_KEYS["autosave_interval"],
                SessionSettings().autosave_interval_seconds,
            ),
            "form_path": _resolve_path(
                os.getenv(ENV_KEYS["form_path"], SessionSettings().form_path)
            ),
        },
    }

    try:
        settings = Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    if settings.sync.enabled and not settings.sync.api_url:
        raise RuntimeError("Invalid configuration: SYNC_API_URL is required when SYNC_ENABLED=true")

    Path(settings.storage.export_path).mkdir(parents=True, exist_ok=True)
    Path(settings.storage.sqlite_path).parent.mkdir(parents=True, exist_ok=True)

    return settings

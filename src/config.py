"""Configuration management for CRM Desk."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_REPO_ROOT = Path(__file__).resolve().parents[1]
_DEFAULT_CONFIG_PATH = _REPO_ROOT / "config" / "crm.yml"
_USER_CONFIG_PATHS = [
    Path("~/.config/crm/crm.yml").expanduser(),
    Path("/config/crm.yml"),
]
_USER_SECRETS_PATHS = [
    Path("~/.config/crm/secrets.yml").expanduser(),
    Path("/config/secrets.yml"),
]


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping from disk, returning an empty mapping if missing."""
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return data


def _yaml_settings_source(paths: list[Path]):
    """Create a Pydantic settings source for a list of YAML paths."""

    def source() -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for path in paths:
            merged.update(_load_yaml(path))
        return merged

    return source


def _set_nested_value(target: dict[str, Any], path: str, value: Any) -> None:
    """Set a dotted-path value on a nested mapping, creating containers."""
    parts = path.split(".")
    cursor = target
    for key in parts[:-1]:
        node = cursor.get(key)
        if not isinstance(node, dict):
            node = {}
            cursor[key] = node
        cursor = node
    cursor[parts[-1]] = value


def _parse_env_value(raw: str, kind: str) -> Any:
    """Parse an environment value into the requested primitive type."""
    if kind == "int":
        return int(raw)
    return raw


def _env_settings_source():
    """Create a settings source that maps environment variables to config keys."""
    mapping = {
        "RECORD_API_URL": ("record_api.url", "str"),
        "RECORD_API_KEY": ("record_api.api_key", "str"),
        "RECORD_API_PROJECT_ID": ("record_api.project_id", "str"),
        "HTTP_TIMEOUT": ("http.timeout", "int"),
        "HTTP_CONNECT_TIMEOUT": ("http.connect_timeout", "int"),
        "USER_TIMEZONE": ("user.timezone", "str"),
        "ALERT_FOLLOW_UP_WINDOW_DAYS": ("alerts.follow_up_window_days", "int"),
        "LOG_LEVEL": ("log_level", "str"),
    }

    def source() -> dict[str, Any]:
        data: dict[str, Any] = {}
        for env_key, (path, kind) in mapping.items():
            raw = os.environ.get(env_key)
            if raw is None:
                continue
            _set_nested_value(data, path, _parse_env_value(raw, kind))
        return data

    return source


class RecordApiConfig(BaseModel):
    """Remote record-storage API connection settings."""

    url: str
    api_key: str | None = None
    project_id: str | None = None

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Normalize to avoid double slashes in request URLs."""
        return value.rstrip("/")


class HttpConfig(BaseModel):
    """HTTP client timeout defaults."""

    timeout: int = 30
    connect_timeout: int = 10


class UserConfig(BaseModel):
    """User presentation settings."""

    timezone: str = "America/New_York"

    @model_validator(mode="after")
    def validate_timezone(self) -> "UserConfig":
        """Ensure the configured timezone is valid."""
        try:
            ZoneInfo(self.timezone)
        except ZoneInfoNotFoundError as exc:
            raise ValueError(f"Invalid timezone: {self.timezone}") from exc
        return self


class AlertsConfig(BaseModel):
    """Alert derivation defaults."""

    follow_up_window_days: int = 7
    date_format: str = "%b %d, %Y"

    @field_validator("follow_up_window_days")
    @classmethod
    def validate_window(cls, value: int) -> int:
        """Ensure the follow-up window is at least one day."""
        if value < 1:
            raise ValueError("alerts.follow_up_window_days must be >= 1.")
        return value


class Settings(BaseSettings):
    """Application settings loaded from environment variables and YAML."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        """Layer settings sources in descending order of precedence."""
        return (
            init_settings,
            _env_settings_source(),
            _yaml_settings_source(_USER_SECRETS_PATHS),
            _yaml_settings_source(_USER_CONFIG_PATHS),
            _yaml_settings_source([_DEFAULT_CONFIG_PATH]),
        )

    # Logging
    log_level: str = "INFO"

    # Record API
    record_api: RecordApiConfig

    # HTTP
    http: HttpConfig = Field(default_factory=HttpConfig)

    # User Context
    user: UserConfig = Field(default_factory=UserConfig)

    # Alerts
    alerts: AlertsConfig = Field(default_factory=AlertsConfig)


# Global settings instance
settings = Settings()

"""Unit tests for YAML configuration loading."""

import pytest
from pydantic import ValidationError

import config as config_module

_ENV_KEYS = [
    "RECORD_API_URL",
    "RECORD_API_KEY",
    "RECORD_API_PROJECT_ID",
    "HTTP_TIMEOUT",
    "USER_TIMEZONE",
    "ALERT_FOLLOW_UP_WINDOW_DAYS",
    "LOG_LEVEL",
]


def _clear_env(monkeypatch, keys):
    """Clear environment variables for config tests."""
    for key in keys:
        monkeypatch.delenv(key, raising=False)


def _use_paths(monkeypatch, default, user=None, secrets=None):
    monkeypatch.setattr(config_module, "_DEFAULT_CONFIG_PATH", default)
    monkeypatch.setattr(config_module, "_USER_CONFIG_PATHS", [user] if user else [])
    monkeypatch.setattr(config_module, "_USER_SECRETS_PATHS", [secrets] if secrets else [])


def test_yaml_precedence(monkeypatch, tmp_path):
    """Environment variables override secrets, user, and default YAML."""
    defaults = tmp_path / "defaults.yml"
    user_cfg = tmp_path / "user.yml"
    secrets = tmp_path / "secrets.yml"

    defaults.write_text(
        "\n".join(
            [
                "record_api:",
                "  url: http://default/",
                "  api_key: default-key",
                "http:",
                "  timeout: 100",
                "user:",
                "  timezone: UTC",
            ]
        ),
        encoding="utf-8",
    )
    user_cfg.write_text(
        "\n".join(
            [
                "record_api:",
                "  url: http://user",
                "http:",
                "  timeout: 200",
                "user:",
                "  timezone: Europe/Berlin",
            ]
        ),
        encoding="utf-8",
    )
    secrets.write_text(
        "\n".join(
            [
                "record_api:",
                "  url: http://secrets",
                "  api_key: secret-key",
                "http:",
                "  timeout: 300",
            ]
        ),
        encoding="utf-8",
    )

    _clear_env(monkeypatch, _ENV_KEYS)
    monkeypatch.setenv("HTTP_TIMEOUT", "400")
    _use_paths(monkeypatch, defaults, user_cfg, secrets)

    settings = config_module.Settings()

    assert settings.http.timeout == 400
    assert settings.record_api.url == "http://secrets"
    assert settings.record_api.api_key == "secret-key"
    assert settings.user.timezone == "Europe/Berlin"


def test_missing_yaml_files(monkeypatch, tmp_path):
    """Missing YAML files fall back to environment settings and defaults."""
    _clear_env(monkeypatch, _ENV_KEYS)
    monkeypatch.setenv("RECORD_API_URL", "http://env/api/")
    monkeypatch.setenv("ALERT_FOLLOW_UP_WINDOW_DAYS", "14")
    _use_paths(
        monkeypatch,
        tmp_path / "missing-default.yml",
        tmp_path / "missing-user.yml",
        tmp_path / "missing-secrets.yml",
    )

    settings = config_module.Settings()

    assert settings.record_api.url == "http://env/api"
    assert settings.alerts.follow_up_window_days == 14
    assert settings.alerts.date_format == "%b %d, %Y"
    assert settings.http.connect_timeout == 10
    assert settings.user.timezone == "America/New_York"


def test_record_api_url_is_required(monkeypatch, tmp_path):
    """Settings cannot be built without a record API URL."""
    _clear_env(monkeypatch, _ENV_KEYS)
    _use_paths(monkeypatch, tmp_path / "missing.yml")

    with pytest.raises(ValidationError):
        config_module.Settings()


def test_non_mapping_yaml_raises(monkeypatch, tmp_path):
    """Non-mapping YAML raises a validation error."""
    defaults = tmp_path / "defaults.yml"
    defaults.write_text("- just\n- a\n- list\n", encoding="utf-8")
    _use_paths(monkeypatch, defaults)

    with pytest.raises(ValueError, match="Config file must contain a mapping"):
        config_module.Settings()


def test_invalid_values_rejected(monkeypatch, tmp_path):
    """Unknown timezones and empty follow-up windows are rejected."""
    _clear_env(monkeypatch, _ENV_KEYS)
    monkeypatch.setenv("RECORD_API_URL", "http://env")
    _use_paths(monkeypatch, tmp_path / "missing.yml")

    monkeypatch.setenv("USER_TIMEZONE", "Nowhere/Special")
    with pytest.raises(ValidationError, match="Invalid timezone"):
        config_module.Settings()

    monkeypatch.setenv("USER_TIMEZONE", "UTC")
    monkeypatch.setenv("ALERT_FOLLOW_UP_WINDOW_DAYS", "0")
    with pytest.raises(ValidationError, match="follow_up_window_days must be >= 1"):
        config_module.Settings()

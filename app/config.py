"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class ConnectorSettings:
    """
    Shared behavior settings for external database connectors.
    """

    sample_size: int = 10
    connect_timeout_seconds: int = 30
    max_retries: int = 2
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0


@dataclass(frozen=True)
class SyncSettings:
    """
    Runtime settings for mirror reconciliation and auto-sync scheduling.
    """

    fetch_limit: int = 10000
    auto_sync_enabled: bool = True
    auto_sync_interval_seconds: int = 60
    cron_secret: str | None = None


@dataclass(frozen=True)
class CredentialSettings:
    """
    Secret used to decrypt stored connection credentials.
    """

    encryption_key: str | None = None


@lru_cache(maxsize=1)
def get_connector_settings() -> ConnectorSettings:
    """
    Return connector settings from environment variables.
    """

    return ConnectorSettings(
        sample_size=max(1, _get_int_env("CONNECTOR_SAMPLE_SIZE", 10)),
        connect_timeout_seconds=max(1, _get_int_env("CONNECTOR_CONNECT_TIMEOUT_SECONDS", 30)),
        max_retries=max(0, _get_int_env("CONNECTOR_MAX_RETRIES", 2)),
        backoff_initial_seconds=max(0.0, _get_float_env("CONNECTOR_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("CONNECTOR_BACKOFF_MULTIPLIER", 2.0)),
    )


@lru_cache(maxsize=1)
def get_sync_settings() -> SyncSettings:
    """
    Return sync settings from environment variables.
    """

    return SyncSettings(
        fetch_limit=max(1, _get_int_env("SYNC_FETCH_LIMIT", 10000)),
        auto_sync_enabled=_get_bool_env("AUTO_SYNC_ENABLED", True),
        auto_sync_interval_seconds=max(5, _get_int_env("AUTO_SYNC_INTERVAL_SECONDS", 60)),
        cron_secret=_get_optional_str_env("CRON_SECRET"),
    )


@lru_cache(maxsize=1)
def get_credential_settings() -> CredentialSettings:
    """
    Return credential settings; the key itself is validated by the resolver.
    """

    return CredentialSettings(
        encryption_key=_get_optional_str_env("CREDENTIALS_ENCRYPTION_KEY"),
    )

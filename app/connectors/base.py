"""
app/connectors/base.py

Connector contract for external data sources and shared retry mechanics.
"""

from __future__ import annotations

import logging
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time as dt_time
from decimal import Decimal
from typing import Any, TypeVar

from app.config import ConnectorSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

Row = dict[str, Any]


class ConnectorError(RuntimeError):
    """
    Base class for failures raised while talking to an external source.
    """


class ConnectorRequestError(ConnectorError):
    """
    Raised when a connector operation fails after retries.
    """


class UnsupportedConnectorError(ValueError):
    """
    Raised when no adapter exists for a connection's vendor type.
    """


@dataclass(frozen=True)
class ConnectorConfig:
    """
    Decrypted, ready-to-use connection parameters.
    """

    host: str
    database: str
    username: str
    password: str = field(default="", repr=False)
    port: int | None = None
    ssl: bool = False
    service_key: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class ColumnInfo:
    """
    One column of an external resource.
    """

    name: str
    type: str | None = None
    nullable: bool | None = None


def to_json_value(value: Any) -> Any:
    """
    Coerce a driver value into something JSON-serialisable.
    """

    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (datetime, date, dt_time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if isinstance(value, Mapping):
        return {str(key): to_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_json_value(item) for item in value]
    return str(value)


class BaseConnector(ABC):
    """
    Uniform access to one external data source.

    A connector instance is owned by a single validation or sync invocation
    and must be closed by it.
    """

    vendor: str

    def __init__(self, *, config: ConnectorConfig, settings: ConnectorSettings) -> None:
        self._config = config
        self._sample_size = settings.sample_size
        self._connect_timeout_seconds = settings.connect_timeout_seconds
        self._max_retries = settings.max_retries
        self._backoff_initial_seconds = settings.backoff_initial_seconds
        self._backoff_multiplier = settings.backoff_multiplier

    @abstractmethod
    def test_connection(self) -> bool:
        """
        Return True when the source is reachable with the configured credentials.
        """

    @abstractmethod
    def list_columns(self, resource: str) -> list[ColumnInfo]:
        """
        Return the columns of one resource; empty when the resource is unknown.
        """

    @abstractmethod
    def sample_data(self, resource: str, columns: list[str]) -> list[Row]:
        """
        Return a bounded sample of rows restricted to ``columns``.
        """

    @abstractmethod
    def query(self, resource: str, filters: Mapping[str, Any], limit: int) -> list[Row]:
        """
        Return up to ``limit`` full rows matching equality ``filters``.
        """

    @abstractmethod
    def close(self) -> None:
        """
        Release any underlying connection or session.
        """

    def __enter__(self) -> BaseConnector:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _with_retries(
        self,
        operation: str,
        func: Callable[[], T],
        *,
        retry_on: tuple[type[BaseException], ...],
    ) -> T:
        """
        Run ``func`` with exponential backoff on transient ``retry_on`` errors.
        """

        last_error: BaseException | None = None
        for attempt in range(self._max_retries + 1):
            try:
                return func()
            except retry_on as exc:
                last_error = exc

            if attempt >= self._max_retries:
                break

            backoff_seconds = self._backoff_initial_seconds * (self._backoff_multiplier**attempt)
            logger.warning(
                "Connector operation retry vendor=%s operation=%s attempt=%s/%s wait_seconds=%.2f host=%s",
                self.vendor,
                operation,
                attempt + 1,
                self._max_retries,
                backoff_seconds,
                self._config.host,
            )
            time.sleep(backoff_seconds)

        logger.error(
            "Connector operation exhausted retries vendor=%s operation=%s host=%s error=%s",
            self.vendor,
            operation,
            self._config.host,
            last_error,
        )
        raise ConnectorRequestError(f"{self.vendor}: {operation} failed after retries.") from last_error

"""
app/connectors/factory.py

Vendor dispatch for external connectors.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from app.config import ConnectorSettings, get_connector_settings
from app.connectors.base import BaseConnector, ConnectorConfig, UnsupportedConnectorError
from app.connectors.sql_connector import MySQLConnector, PostgreSQLConnector


class ConnectorType(str, Enum):
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"

    @classmethod
    def parse(cls, value: str) -> ConnectorType:
        normalized = (value or "").strip().lower()
        normalized = _ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError as exc:
            allowed = ", ".join(sorted(member.value for member in cls))
            raise UnsupportedConnectorError(
                f"Unsupported connection type '{value}'. Allowed types: {allowed}."
            ) from exc


_ALIASES: dict[str, str] = {
    "postgres": ConnectorType.POSTGRESQL.value,
    "supabase": ConnectorType.POSTGRESQL.value,
    "mariadb": ConnectorType.MYSQL.value,
}

_ADAPTERS: dict[ConnectorType, type[BaseConnector]] = {
    ConnectorType.POSTGRESQL: PostgreSQLConnector,
    ConnectorType.MYSQL: MySQLConnector,
}

ConnectorFactory = Callable[[str, ConnectorConfig], BaseConnector]


def create_connector(
    vendor_type: str,
    config: ConnectorConfig,
    settings: ConnectorSettings | None = None,
) -> BaseConnector:
    """
    Instantiate the adapter registered for ``vendor_type``.
    """

    adapter = _ADAPTERS[ConnectorType.parse(vendor_type)]
    return adapter(config=config, settings=settings or get_connector_settings())

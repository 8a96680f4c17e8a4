"""
app/connectors package marker.
"""

from app.connectors.base import (
    BaseConnector,
    ColumnInfo,
    ConnectorConfig,
    ConnectorError,
    ConnectorRequestError,
    Row,
    UnsupportedConnectorError,
)
from app.connectors.factory import ConnectorFactory, ConnectorType, create_connector
from app.connectors.sql_connector import MySQLConnector, PostgreSQLConnector, SQLAlchemyConnector

__all__ = [
    "BaseConnector",
    "ColumnInfo",
    "ConnectorConfig",
    "ConnectorError",
    "ConnectorFactory",
    "ConnectorRequestError",
    "ConnectorType",
    "MySQLConnector",
    "PostgreSQLConnector",
    "Row",
    "SQLAlchemyConnector",
    "UnsupportedConnectorError",
    "create_connector",
]

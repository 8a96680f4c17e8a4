"""
app/connectors/sql_connector.py

SQLAlchemy Core adapters for relational external sources.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import MetaData, Table, inspect, select, text
from sqlalchemy.engine import URL, Engine, create_engine
from sqlalchemy.exc import NoSuchTableError, OperationalError, SQLAlchemyError
from sqlalchemy.pool import NullPool

from app.connectors.base import (
    BaseConnector,
    ColumnInfo,
    ConnectorRequestError,
    Row,
    to_json_value,
)

logger = logging.getLogger(__name__)


class SQLAlchemyConnector(BaseConnector):
    """
    Shared mechanics for SQL sources reachable through a SQLAlchemy dialect.

    Identifiers are always bound through reflected Table objects, never
    interpolated into SQL text.
    """

    drivername: str
    default_port: int
    default_schema: str | None = None

    _engine: Engine | None = None

    def _connect_args(self) -> dict[str, Any]:
        return {}

    def _build_url(self) -> URL:
        return URL.create(
            self.drivername,
            username=self._config.username,
            password=self._config.password or None,
            host=self._config.host,
            port=self._config.port or self.default_port,
            database=self._config.database,
        )

    def _get_engine(self) -> Engine:
        if self._engine is None:
            self._engine = create_engine(
                self._build_url(),
                poolclass=NullPool,
                connect_args=self._connect_args(),
            )
        return self._engine

    def _split_resource(self, resource: str) -> tuple[str | None, str]:
        name = resource.strip()
        if "." in name:
            schema, table = name.split(".", 1)
            return schema, table
        return self.default_schema, name

    def _reflect(self, resource: str) -> Table:
        schema, table_name = self._split_resource(resource)
        try:
            return Table(table_name, MetaData(), schema=schema, autoload_with=self._get_engine())
        except NoSuchTableError as exc:
            raise ConnectorRequestError(f"{self.vendor}: resource '{resource}' does not exist.") from exc

    def _ping(self) -> None:
        with self._get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))

    def test_connection(self) -> bool:
        try:
            self._with_retries("test_connection", self._ping, retry_on=(OperationalError,))
        except ConnectorRequestError:
            return False
        except SQLAlchemyError as exc:
            logger.error(
                "Connection test failed vendor=%s host=%s error=%s",
                self.vendor,
                self._config.host,
                exc,
            )
            return False
        return True

    def list_columns(self, resource: str) -> list[ColumnInfo]:
        schema, table_name = self._split_resource(resource)
        try:
            columns = inspect(self._get_engine()).get_columns(table_name, schema=schema)
        except NoSuchTableError:
            logger.info("Resource not found vendor=%s resource=%s", self.vendor, resource)
            return []
        except SQLAlchemyError as exc:
            raise ConnectorRequestError(f"{self.vendor}: unable to list columns for '{resource}'.") from exc

        return [
            ColumnInfo(
                name=column["name"],
                type=str(column["type"]),
                nullable=column.get("nullable"),
            )
            for column in columns
        ]

    def sample_data(self, resource: str, columns: list[str]) -> list[Row]:
        table = self._reflect(resource)
        try:
            selected = [table.c[column] for column in columns] if columns else [table]
        except KeyError as exc:
            raise ConnectorRequestError(f"{self.vendor}: unknown column {exc} in '{resource}'.") from exc

        stmt = select(*selected).limit(self._sample_size)
        return self._fetch(stmt, resource)

    def query(self, resource: str, filters: Mapping[str, Any], limit: int) -> list[Row]:
        table = self._reflect(resource)
        stmt = select(table)
        for column, value in filters.items():
            if column not in table.c:
                raise ConnectorRequestError(f"{self.vendor}: unknown filter column '{column}' in '{resource}'.")
            stmt = stmt.where(table.c[column] == value)
        return self._fetch(stmt.limit(max(1, limit)), resource)

    def _fetch(self, stmt: Any, resource: str) -> list[Row]:
        try:
            with self._get_engine().connect() as conn:
                result = conn.execute(stmt)
                return [
                    {key: to_json_value(value) for key, value in row.items()}
                    for row in result.mappings()
                ]
        except SQLAlchemyError as exc:
            raise ConnectorRequestError(f"{self.vendor}: query against '{resource}' failed.") from exc

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None


class PostgreSQLConnector(SQLAlchemyConnector):
    vendor = "postgresql"
    drivername = "postgresql+psycopg"
    default_port = 5432
    default_schema = "public"

    def _connect_args(self) -> dict[str, Any]:
        return {
            "connect_timeout": self._connect_timeout_seconds,
            "sslmode": "require" if self._config.ssl else "prefer",
        }


class MySQLConnector(SQLAlchemyConnector):
    vendor = "mysql"
    drivername = "mysql+pymysql"
    default_port = 3306

    def _connect_args(self) -> dict[str, Any]:
        args: dict[str, Any] = {"connect_timeout": self._connect_timeout_seconds}
        if self._config.ssl:
            # Encrypt without verifying the server certificate.
            args["ssl"] = {"check_hostname": False}
        return args

"""
tests/fakes.py

In-memory fakes shared by the service and API tests.

No database, no network: repositories keep plain objects in lists and the
connector serves canned rows per resource.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any

from app.connectors.base import BaseConnector, ColumnInfo, ConnectorConfig

FIXED_NOW = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)
OWNER_ID = "owner-1"


class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime = FIXED_NOW) -> None:
        self._current = start

    def __call__(self) -> datetime:
        value = self._current
        self._current = value + timedelta(seconds=1)
        return value


class FakeSession:
    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0
        self.flushes = 0
        self.closed = False

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def flush(self) -> None:
        self.flushes += 1

    def close(self) -> None:
        self.closed = True


class FakeConnector(BaseConnector):
    vendor = "fake"

    def __init__(
        self,
        *,
        rows_by_resource: dict[str, list[dict[str, Any]]] | None = None,
        columns_by_resource: dict[str, list[str]] | None = None,
        connected: bool = True,
        fail_on: dict[str, Exception] | None = None,
    ) -> None:
        self.rows_by_resource = rows_by_resource or {}
        self.columns_by_resource = columns_by_resource or {}
        self.connected = connected
        self.fail_on = fail_on or {}
        self.close_calls = 0
        self.queries: list[tuple[str, dict[str, Any], int]] = []

    def _maybe_fail(self, operation: str, resource: str | None = None) -> None:
        for key in (f"{operation}:{resource}", operation):
            if key in self.fail_on:
                raise self.fail_on[key]

    def test_connection(self) -> bool:
        self._maybe_fail("test_connection")
        return self.connected

    def list_columns(self, resource: str) -> list[ColumnInfo]:
        self._maybe_fail("list_columns", resource)
        return [ColumnInfo(name=name) for name in self.columns_by_resource.get(resource, [])]

    def sample_data(self, resource: str, columns: list[str]) -> list[dict[str, Any]]:
        self._maybe_fail("sample_data", resource)
        rows = self.rows_by_resource.get(resource, [])[:10]
        return [{column: row.get(column) for column in columns} for row in rows]

    def query(self, resource: str, filters: dict[str, Any], limit: int) -> list[dict[str, Any]]:
        self._maybe_fail("query", resource)
        self.queries.append((resource, dict(filters), limit))
        return [dict(row) for row in self.rows_by_resource.get(resource, [])[:limit]]

    def close(self) -> None:
        self.close_calls += 1


class FakeCredentialResolver:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error

    def resolve(self, connection: Any) -> ConnectorConfig:
        if self.error is not None:
            raise self.error
        return ConnectorConfig(
            host=connection.host,
            database=connection.database,
            username=connection.username,
            password="secret",
        )


class FakeConnectionRepository:
    def __init__(self, connections: list[SimpleNamespace]) -> None:
        self.connections = {connection.id: connection for connection in connections}
        self.claims = 0

    def get(self, connection_id: uuid.UUID, *, owner_id: str | None = None) -> SimpleNamespace | None:
        connection = self.connections.get(connection_id)
        if connection is None:
            return None
        if owner_id is not None and connection.tenant_id != owner_id:
            return None
        return connection

    def claim_sync_lock(self, connection_id: uuid.UUID) -> bool:
        self.claims += 1
        connection = self.connections[connection_id]
        if connection.is_syncing:
            return False
        connection.is_syncing = True
        return True

    def release_sync_lock(self, connection_id: uuid.UUID) -> None:
        self.connections[connection_id].is_syncing = False

    def record_sync_completion(
        self,
        connection_id: uuid.UUID,
        *,
        last_synced_at: datetime,
        next_sync_at: datetime | None,
    ) -> None:
        connection = self.connections[connection_id]
        connection.last_synced_at = last_synced_at
        connection.next_sync_at = next_sync_at
        connection.is_syncing = False

    def list_due_for_sync(self, *, now: datetime) -> list[SimpleNamespace]:
        return [
            connection
            for connection in self.connections.values()
            if connection.status == "ACTIVE"
            and connection.is_auto_sync_enabled
            and not connection.is_syncing
            and (connection.next_sync_at is None or connection.next_sync_at <= now)
        ]


class FakeMappingRepository:
    def __init__(self, mappings: list[SimpleNamespace] | None = None) -> None:
        self.mappings = list(mappings or [])
        self.validations: list[dict[str, Any]] = []
        self.fail_on_save: Exception | None = None

    def get_for_owner(self, mapping_id: uuid.UUID, *, owner_id: str) -> SimpleNamespace | None:
        for mapping in self.mappings:
            if mapping.id == mapping_id and mapping.owner_id == owner_id:
                return mapping
        return None

    def list_for_owner(self, owner_id: str) -> list[SimpleNamespace]:
        return [mapping for mapping in reversed(self.mappings) if mapping.owner_id == owner_id]

    def list_for_connection(self, connection_id: uuid.UUID, *, owner_id: str | None = None) -> list[SimpleNamespace]:
        return [
            mapping
            for mapping in self.mappings
            if mapping.connection_id == connection_id and (owner_id is None or mapping.owner_id == owner_id)
        ]

    def save(
        self,
        *,
        owner_id: str,
        connection_id: uuid.UUID | None,
        resource: str,
        fields: dict[str, str],
        validated_at: datetime,
    ) -> SimpleNamespace:
        if self.fail_on_save is not None:
            raise self.fail_on_save
        for mapping in self.mappings:
            if (mapping.owner_id, mapping.connection_id, mapping.resource) == (owner_id, connection_id, resource):
                mapping.fields = fields
                mapping.validated_at = validated_at
                return mapping
        mapping = make_mapping(
            owner_id=owner_id,
            connection_id=connection_id,
            resource=resource,
            fields=fields,
            validated_at=validated_at,
        )
        self.mappings.append(mapping)
        return mapping

    def add_validation(self, *, mapping_id: uuid.UUID, valid: bool, details: dict[str, Any] | None) -> dict[str, Any]:
        validation = {"mapping_id": mapping_id, "valid": valid, "details": details}
        self.validations.append(validation)
        return validation


class FakeRecordRepository:
    def __init__(self) -> None:
        self.records: list[SimpleNamespace] = []

    def list_for_mapping(self, *, connection_id: uuid.UUID, mapping_id: uuid.UUID) -> list[SimpleNamespace]:
        return [
            record
            for record in self.records
            if record.connection_id == connection_id and record.mapping_id == mapping_id
        ]

    def list_records(
        self,
        *,
        mapping_id: uuid.UUID,
        include_inactive: bool = False,
        limit: int = 100,
    ) -> list[SimpleNamespace]:
        selected = [
            record
            for record in self.records
            if record.mapping_id == mapping_id and (include_inactive or record.is_active)
        ]
        return selected[:limit]

    def insert(
        self,
        *,
        connection_id: uuid.UUID,
        mapping_id: uuid.UUID,
        external_id: str,
        data: dict[str, Any],
        synced_at: datetime,
    ) -> SimpleNamespace:
        record = SimpleNamespace(
            id=uuid.uuid4(),
            connection_id=connection_id,
            mapping_id=mapping_id,
            external_id=external_id,
            data=data,
            is_active=True,
            synced_at=synced_at,
        )
        self.records.append(record)
        return record

    def update(self, record: SimpleNamespace, *, data: dict[str, Any], synced_at: datetime) -> None:
        record.data = data
        record.is_active = True
        record.synced_at = synced_at

    def deactivate(self, record: SimpleNamespace, *, synced_at: datetime) -> None:
        record.is_active = False
        record.synced_at = synced_at

    def flush(self) -> None:
        return None

    def by_external_id(self, mapping_id: uuid.UUID) -> dict[str, SimpleNamespace]:
        return {record.external_id: record for record in self.records if record.mapping_id == mapping_id}


def make_connection(**overrides: Any) -> SimpleNamespace:
    values: dict[str, Any] = {
        "id": uuid.uuid4(),
        "tenant_id": OWNER_ID,
        "name": "CRM replica",
        "type": "postgresql",
        "host": "db.example.internal",
        "port": 5432,
        "database": "crm",
        "username": "reader",
        "status": "ACTIVE",
        "sync_frequency_minutes": None,
        "is_auto_sync_enabled": True,
        "last_synced_at": None,
        "next_sync_at": None,
        "is_syncing": False,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def make_mapping(**overrides: Any) -> SimpleNamespace:
    values: dict[str, Any] = {
        "id": uuid.uuid4(),
        "owner_id": OWNER_ID,
        "connection_id": None,
        "connection": None,
        "resource": "deals",
        "fields": {"status": "status", "date": "closed_on", "contact": "email"},
        "validated_at": FIXED_NOW,
        "created_at": FIXED_NOW,
    }
    values.update(overrides)
    return SimpleNamespace(**values)

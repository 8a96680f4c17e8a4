"""
app/services/sync_service.py

Reconciles mapped external resources into the local mirror.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta
from functools import lru_cache

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_sync_settings
from app.connectors import ConnectorFactory, ConnectorRequestError, Row, create_connector
from app.domain.field_mapping import MappingFields
from app.domain.sync import AutoSyncOutcome, MappingSyncResult, SyncPassResult, SyncStatus
from app.failure_codes import SYNC_ERROR
from app.mappers.record_mapper import RecordMapper, external_id_for
from app.repositories.connection_repository import ConnectionRepository
from app.repositories.mapped_record_repository import MappedRecordRepository
from app.repositories.mapping_repository import MappingRepository
from app.security import CredentialResolver, get_credential_resolver
from app.services.sync_lock import ConnectionSyncLock, SyncInProgressError
from db.base import utcnow
from db.models.external_connection import ExternalConnection
from db.models.field_mapping import FieldMapping

logger = logging.getLogger(__name__)


class ConnectionNotFoundError(LookupError):
    """
    Raised when a connection does not exist or is not visible to the caller.
    """

    def __init__(self, connection_id: uuid.UUID | None) -> None:
        super().__init__("Database connection not found")
        self.connection_id = connection_id


class SyncPassError(RuntimeError):
    """
    Raised when a pass fails outside any single mapping.
    """

    code = SYNC_ERROR


class SyncReconciler:
    """
    Mirrors every mapping of a connection into MappedRecords.

    One mapping failing is recorded in its result and does not stop the
    others; each mapping commits on its own.
    """

    def __init__(
        self,
        *,
        credential_resolver: CredentialResolver,
        connector_factory: ConnectorFactory = create_connector,
        fetch_limit: int = 10000,
        connection_repository_factory: Callable[[Session], ConnectionRepository] = ConnectionRepository,
        mapping_repository_factory: Callable[[Session], MappingRepository] = MappingRepository,
        record_repository_factory: Callable[[Session], MappedRecordRepository] = MappedRecordRepository,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._credential_resolver = credential_resolver
        self._connector_factory = connector_factory
        self._fetch_limit = fetch_limit
        self._connection_repository_factory = connection_repository_factory
        self._mapping_repository_factory = mapping_repository_factory
        self._record_repository_factory = record_repository_factory
        self._clock = clock

    def sync_connection(
        self,
        *,
        db: Session,
        connection_id: uuid.UUID | None,
        owner_id: str | None = None,
    ) -> SyncPassResult:
        """
        Run one reconciliation pass over all of the connection's mappings.

        Raises ConnectionNotFoundError, SyncInProgressError, or SyncPassError.
        """

        if connection_id is None:
            raise ConnectionNotFoundError(connection_id)

        connections = self._connection_repository_factory(db)
        try:
            connection = connections.get(connection_id, owner_id=owner_id)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Connection lookup failed connection_id=%s", connection_id)
            raise SyncPassError("Failed to load connection") from exc
        if connection is None:
            raise ConnectionNotFoundError(connection_id)

        sync_frequency_minutes = connection.sync_frequency_minutes
        auto_sync_enabled = connection.is_auto_sync_enabled

        try:
            with ConnectionSyncLock(
                session=db,
                connections=connections,
                connection_id=connection_id,
            ) as lock:
                mappings = self._mapping_repository_factory(db).list_for_connection(
                    connection_id,
                    owner_id=owner_id,
                )
                results = [
                    self._sync_mapping_isolated(db=db, connection=connection, mapping=mapping)
                    for mapping in mappings
                ]

                finished_at = self._clock()
                next_sync_at = None
                if auto_sync_enabled and sync_frequency_minutes:
                    next_sync_at = finished_at + timedelta(minutes=sync_frequency_minutes)
                lock.complete(last_synced_at=finished_at, next_sync_at=next_sync_at)
        except SyncInProgressError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("Sync pass failed connection_id=%s", connection_id)
            raise SyncPassError(str(exc) or "Sync failed") from exc

        status = SyncStatus.SUCCESS if all(result.success for result in results) else SyncStatus.PARTIAL
        logger.info(
            "Sync pass finished connection_id=%s status=%s mappings=%s",
            connection_id,
            status,
            len(results),
        )
        return SyncPassResult(
            connection_id=connection_id,
            status=status,
            last_synced_at=finished_at,
            next_sync_at=next_sync_at,
            results=results,
        )

    def sync_mapping(
        self,
        *,
        db: Session,
        connection: ExternalConnection,
        mapping: FieldMapping,
    ) -> MappingSyncResult:
        """
        Reconcile one mapping's resource against its mirrored records.

        Writes are flushed but not committed.
        """

        fields = MappingFields.parse(mapping.fields or {})
        pk_column = fields.primary_key_column
        rows = self._fetch_rows(connection=connection, resource=mapping.resource, fields=fields)

        synced_at = self._clock()
        records = self._record_repository_factory(db)
        existing = {
            record.external_id: record
            for record in records.list_for_mapping(connection_id=connection.id, mapping_id=mapping.id)
        }
        previously_active = sum(1 for record in existing.values() if record.is_active)

        # Later duplicates of the same external id win.
        external: dict[str, Row] = {}
        for row in rows:
            external_id = external_id_for(row, pk_column)
            if external_id:
                external[external_id] = row

        mapper = RecordMapper(fields)
        inserted = updated = deactivated = reactivated = 0
        for external_id, row in external.items():
            payload = mapper.to_mirror_payload(row)
            record = existing.get(external_id)
            if record is None:
                records.insert(
                    connection_id=connection.id,
                    mapping_id=mapping.id,
                    external_id=external_id,
                    data=payload,
                    synced_at=synced_at,
                )
                inserted += 1
            else:
                if not record.is_active:
                    reactivated += 1
                records.update(record, data=payload, synced_at=synced_at)
                updated += 1

        for external_id, record in existing.items():
            if external_id not in external and record.is_active:
                records.deactivate(record, synced_at=synced_at)
                deactivated += 1

        records.flush()
        return MappingSyncResult(
            mapping_id=mapping.id,
            resource=mapping.resource,
            success=True,
            inserted=inserted,
            updated=updated,
            deactivated=deactivated,
            total_external=len(rows),
            total_mapped=previously_active + reactivated + inserted - deactivated,
        )

    def run_due_syncs(self, *, db: Session, now: datetime | None = None) -> list[AutoSyncOutcome]:
        """
        Sync every connection whose next sync is due. Never raises per connection.
        """

        due = self._connection_repository_factory(db).list_due_for_sync(now=now or self._clock())
        targets = [(connection.id, connection.name) for connection in due]
        outcomes: list[AutoSyncOutcome] = []

        for connection_id, connection_name in targets:
            try:
                result = self.sync_connection(db=db, connection_id=connection_id)
            except (ConnectionNotFoundError, SyncInProgressError, SyncPassError) as exc:
                logger.warning(
                    "Auto-sync skipped connection_id=%s name=%s error=%s",
                    connection_id,
                    connection_name,
                    exc,
                )
                outcomes.append(
                    AutoSyncOutcome(
                        connection_id=connection_id,
                        connection_name=connection_name,
                        success=False,
                        error=str(exc),
                    )
                )
                continue

            outcomes.append(
                AutoSyncOutcome(
                    connection_id=connection_id,
                    connection_name=connection_name,
                    success=True,
                    status=result.status,
                )
            )
        return outcomes

    def _sync_mapping_isolated(
        self,
        *,
        db: Session,
        connection: ExternalConnection,
        mapping: FieldMapping,
    ) -> MappingSyncResult:
        mapping_id = mapping.id
        resource = mapping.resource
        try:
            result = self.sync_mapping(db=db, connection=connection, mapping=mapping)
            db.commit()
        except Exception as exc:  # noqa: BLE001
            db.rollback()
            logger.warning(
                "Mapping sync failed mapping_id=%s resource=%s error=%s",
                mapping_id,
                resource,
                exc,
            )
            return MappingSyncResult(
                mapping_id=mapping_id,
                resource=resource,
                success=False,
                error=str(exc) or exc.__class__.__name__,
            )

        logger.info(
            "Mapping synced mapping_id=%s inserted=%s updated=%s deactivated=%s total_external=%s",
            mapping_id,
            result.inserted,
            result.updated,
            result.deactivated,
            result.total_external,
        )
        return result

    def _fetch_rows(
        self,
        *,
        connection: ExternalConnection,
        resource: str,
        fields: MappingFields,
    ) -> list[Row]:
        config = self._credential_resolver.resolve(connection)
        connector = self._connector_factory(connection.type, config)
        try:
            if not connector.test_connection():
                raise ConnectorRequestError("Database connection failed")
            rows = connector.query(resource, {}, self._fetch_limit)
        finally:
            connector.close()

        if len(rows) >= self._fetch_limit:
            logger.warning(
                "Fetch hit limit, rows beyond it are treated as absent resource=%s limit=%s",
                resource,
                self._fetch_limit,
            )
        if rows:
            expected = set(fields.columns()) | {fields.primary_key_column}
            missing = sorted(expected - set(rows[0]))
            if missing:
                logger.warning("Fetched rows lack mapped columns resource=%s missing=%s", resource, missing)
        return rows


@lru_cache(maxsize=1)
def get_sync_reconciler() -> SyncReconciler:
    """
    Build and cache the reconciler from environment settings.
    """

    return SyncReconciler(
        credential_resolver=get_credential_resolver(),
        fetch_limit=get_sync_settings().fetch_limit,
    )

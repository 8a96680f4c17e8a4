"""
app/repositories/connection_repository.py

Connection lookup, single-flight sync claims and sync metadata persistence.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Select, exists, or_, select, update
from sqlalchemy.orm import Session

from db.models.external_connection import ConnectionStatus, ExternalConnection
from db.models.field_mapping import FieldMapping


class ConnectionRepository:
    """
    Repository for external connections and their sync flag.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(
        self,
        connection_id: uuid.UUID,
        *,
        owner_id: str | None = None,
    ) -> ExternalConnection | None:
        """
        Resolve one connection, optionally restricted to what ``owner_id`` can see.

        An owner sees connections of their tenant and connections they hold a
        mapping on.
        """

        stmt: Select[tuple[ExternalConnection]] = select(ExternalConnection).where(
            ExternalConnection.id == connection_id
        )
        if owner_id is not None:
            owns_mapping = exists().where(
                FieldMapping.connection_id == ExternalConnection.id,
                FieldMapping.owner_id == owner_id,
            )
            stmt = stmt.where(or_(ExternalConnection.tenant_id == owner_id, owns_mapping))
        return self._session.execute(stmt).scalars().first()

    def claim_sync_lock(self, connection_id: uuid.UUID) -> bool:
        """
        Atomically flip is_syncing false -> true. Returns False if already held.
        """

        result = self._session.execute(
            update(ExternalConnection)
            .where(
                ExternalConnection.id == connection_id,
                ExternalConnection.is_syncing.is_(False),
            )
            .values(is_syncing=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def release_sync_lock(self, connection_id: uuid.UUID) -> None:
        self._session.execute(
            update(ExternalConnection)
            .where(ExternalConnection.id == connection_id)
            .values(is_syncing=False)
            .execution_options(synchronize_session=False)
        )

    def record_sync_completion(
        self,
        connection_id: uuid.UUID,
        *,
        last_synced_at: datetime,
        next_sync_at: datetime | None,
    ) -> None:
        """
        Store sync timestamps and release the sync flag in one statement.
        """

        self._session.execute(
            update(ExternalConnection)
            .where(ExternalConnection.id == connection_id)
            .values(
                last_synced_at=last_synced_at,
                next_sync_at=next_sync_at,
                is_syncing=False,
            )
            .execution_options(synchronize_session=False)
        )

    def list_due_for_sync(self, *, now: datetime) -> list[ExternalConnection]:
        """
        Active, auto-sync-enabled, idle connections whose next sync is due.
        """

        stmt = (
            select(ExternalConnection)
            .where(
                ExternalConnection.status == ConnectionStatus.ACTIVE,
                ExternalConnection.is_auto_sync_enabled.is_(True),
                ExternalConnection.is_syncing.is_(False),
                or_(
                    ExternalConnection.next_sync_at.is_(None),
                    ExternalConnection.next_sync_at <= now,
                ),
            )
            .order_by(ExternalConnection.next_sync_at.asc().nulls_first())
        )
        return list(self._session.execute(stmt).scalars().all())

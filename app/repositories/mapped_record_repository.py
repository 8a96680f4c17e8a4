"""
app/repositories/mapped_record_repository.py

DB persistence for the local mirror of external rows.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.mapped_record import MappedRecord


class MappedRecordRepository:
    """
    Repository for mirrored records. Records are deactivated, never deleted.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_for_mapping(self, *, connection_id: uuid.UUID, mapping_id: uuid.UUID) -> list[MappedRecord]:
        stmt = select(MappedRecord).where(
            MappedRecord.connection_id == connection_id,
            MappedRecord.mapping_id == mapping_id,
        )
        return list(self._session.execute(stmt).scalars().all())

    def list_records(
        self,
        *,
        mapping_id: uuid.UUID,
        include_inactive: bool = False,
        limit: int = 100,
    ) -> list[MappedRecord]:
        stmt = select(MappedRecord).where(MappedRecord.mapping_id == mapping_id)
        if not include_inactive:
            stmt = stmt.where(MappedRecord.is_active.is_(True))
        stmt = stmt.order_by(MappedRecord.synced_at.desc()).limit(max(1, limit))
        return list(self._session.execute(stmt).scalars().all())

    def insert(
        self,
        *,
        connection_id: uuid.UUID,
        mapping_id: uuid.UUID,
        external_id: str,
        data: dict[str, Any],
        synced_at: datetime,
    ) -> MappedRecord:
        record = MappedRecord(
            connection_id=connection_id,
            mapping_id=mapping_id,
            external_id=external_id,
            data=data,
            is_active=True,
            synced_at=synced_at,
        )
        self._session.add(record)
        return record

    def update(self, record: MappedRecord, *, data: dict[str, Any], synced_at: datetime) -> None:
        record.data = data
        record.is_active = True
        record.synced_at = synced_at

    def deactivate(self, record: MappedRecord, *, synced_at: datetime) -> None:
        record.is_active = False
        record.synced_at = synced_at

    def flush(self) -> None:
        self._session.flush()

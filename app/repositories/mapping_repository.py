"""
app/repositories/mapping_repository.py

Persistence helpers for canonical field mappings and their validation audit.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from db.models.field_mapping import FieldMapping, MappingValidation


class MappingRepository:
    """
    Repository for mapping upserts and the append-only validation trail.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_for_owner(self, mapping_id: uuid.UUID, *, owner_id: str) -> FieldMapping | None:
        stmt = select(FieldMapping).where(
            FieldMapping.id == mapping_id,
            FieldMapping.owner_id == owner_id,
        )
        return self._session.execute(stmt).scalars().first()

    def list_for_owner(self, owner_id: str) -> list[FieldMapping]:
        """
        All mappings of one owner, newest first, with their connection loaded.
        """

        stmt = (
            select(FieldMapping)
            .options(selectinload(FieldMapping.connection))
            .where(FieldMapping.owner_id == owner_id)
            .order_by(FieldMapping.created_at.desc())
        )
        return list(self._session.execute(stmt).scalars().all())

    def list_for_connection(
        self,
        connection_id: uuid.UUID,
        *,
        owner_id: str | None = None,
    ) -> list[FieldMapping]:
        stmt = select(FieldMapping).where(FieldMapping.connection_id == connection_id)
        if owner_id is not None:
            stmt = stmt.where(FieldMapping.owner_id == owner_id)
        stmt = stmt.order_by(FieldMapping.created_at.asc())
        return list(self._session.execute(stmt).scalars().all())

    def save(
        self,
        *,
        owner_id: str,
        connection_id: uuid.UUID | None,
        resource: str,
        fields: dict[str, str],
        validated_at: datetime,
    ) -> FieldMapping:
        """
        Insert or update the mapping keyed by (owner_id, connection_id, resource).
        """

        normalized_resource = resource.strip()
        stmt = select(FieldMapping).where(
            FieldMapping.owner_id == owner_id,
            FieldMapping.resource == normalized_resource,
        )
        if connection_id is None:
            stmt = stmt.where(FieldMapping.connection_id.is_(None))
        else:
            stmt = stmt.where(FieldMapping.connection_id == connection_id)
        existing = self._session.execute(stmt).scalars().first()

        if existing is None:
            existing = FieldMapping(
                owner_id=owner_id,
                connection_id=connection_id,
                resource=normalized_resource,
                fields=fields,
                validated_at=validated_at,
            )
            self._session.add(existing)
        else:
            existing.fields = fields
            existing.validated_at = validated_at

        self._session.flush()
        return existing

    def add_validation(
        self,
        *,
        mapping_id: uuid.UUID,
        valid: bool,
        details: dict[str, Any] | None,
    ) -> MappingValidation:
        validation = MappingValidation(mapping_id=mapping_id, valid=valid, details=details)
        self._session.add(validation)
        self._session.flush()
        return validation

"""
db/models/field_mapping.py

Accepted canonical-field mappings and their append-only validation audit trail.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.external_connection import ExternalConnection


class FieldMapping(Base, TimestampMixin):
    """
    Canonical field -> source column mapping for one external resource.

    At most one row exists per (owner_id, connection_id, resource).
    """

    __tablename__ = "field_mappings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False)
    connection_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("external_connections.id", ondelete="CASCADE"),
        nullable=True,
    )
    resource: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Table or collection name in the external source",
    )
    fields: Mapped[dict[str, str]] = mapped_column(
        JSONB,
        nullable=False,
        comment="Canonical field -> source column",
    )
    validated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    connection: Mapped["ExternalConnection | None"] = relationship(back_populates="mappings")
    validations: Mapped[list["MappingValidation"]] = relationship(
        back_populates="mapping",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint(
            "owner_id",
            "connection_id",
            "resource",
            name="uq_field_mappings_owner_connection_resource",
        ),
        Index("ix_field_mappings_owner_id", "owner_id"),
        Index("ix_field_mappings_connection_id", "connection_id"),
    )


class MappingValidation(Base):
    """
    One successful validate-and-save run. Rows are never updated.
    """

    __tablename__ = "mapping_validations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    mapping_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("field_mappings.id", ondelete="CASCADE"),
        nullable=False,
    )
    valid: Mapped[bool] = mapped_column(Boolean, nullable=False)
    details: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="Data quality metrics snapshot",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    mapping: Mapped["FieldMapping"] = relationship(back_populates="validations")

    __table_args__ = (Index("ix_mapping_validations_mapping_id", "mapping_id"),)

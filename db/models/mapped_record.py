"""
db/models/mapped_record.py

Local mirror of one external row, keyed by its external identity.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class MappedRecord(Base, TimestampMixin):
    """
    data holds the canonical projection plus the raw source row under "_raw".

    Rows that disappear from the source are flipped to is_active=False and
    kept, so downstream idempotency keys built on external_id stay valid.
    """

    __tablename__ = "mapped_records"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    connection_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("external_connections.id", ondelete="CASCADE"),
        nullable=False,
    )
    mapping_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("field_mappings.id", ondelete="CASCADE"),
        nullable=False,
    )
    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    synced_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint(
            "connection_id",
            "mapping_id",
            "external_id",
            name="uq_mapped_records_identity",
        ),
        Index("ix_mapped_records_mapping_active", "mapping_id", "is_active"),
    )

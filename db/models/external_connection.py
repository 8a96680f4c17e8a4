"""
db/models/external_connection.py

A tenant's connection to an external relational data source, including the
sync schedule and the single-flight sync flag.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.field_mapping import FieldMapping


class ConnectionStatus:
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class ExternalConnection(Base, TimestampMixin):
    """
    Stored connection details for one external database.

    password and config["serviceKey"] are Fernet tokens; they are only ever
    decrypted by the credential resolver. is_syncing is claimed and released
    through ConnectionRepository, never assigned directly.
    """

    __tablename__ = "external_connections"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    tenant_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Owning tenant identifier",
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Vendor type: postgresql, mysql",
    )
    host: Mapped[str] = mapped_column(String(255), nullable=False)
    port: Mapped[int | None] = mapped_column(Integer, nullable=True)
    database: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    password: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Encrypted password token",
    )
    config: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="Vendor-specific options: ssl flag, encrypted serviceKey",
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=ConnectionStatus.ACTIVE,
    )
    last_tested_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    sync_frequency_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_auto_sync_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    next_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_syncing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    mappings: Mapped[list["FieldMapping"]] = relationship(
        back_populates="connection",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_external_connections_tenant_id", "tenant_id"),
        Index(
            "ix_external_connections_auto_sync",
            "status",
            "is_auto_sync_enabled",
            "is_syncing",
            "next_sync_at",
        ),
    )

    def __repr__(self) -> str:
        return f"<ExternalConnection id={self.id} type={self.type!r} name={self.name!r}>"

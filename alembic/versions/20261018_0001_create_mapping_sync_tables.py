"""create external_connections, field_mappings, mapping_validations, mapped_records

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "external_connections",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", sa.String(length=255), nullable=False, comment="Owning tenant identifier"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False, comment="Vendor type: postgresql, mysql"),
        sa.Column("host", sa.String(length=255), nullable=False),
        sa.Column("port", sa.Integer(), nullable=True),
        sa.Column("database", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("password", sa.Text(), nullable=True, comment="Encrypted password token"),
        sa.Column(
            "config",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="Vendor-specific options: ssl flag, encrypted serviceKey",
        ),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("last_tested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sync_frequency_minutes", sa.Integer(), nullable=True),
        sa.Column("is_auto_sync_enabled", sa.Boolean(), nullable=False),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_sync_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_syncing", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_external_connections_tenant_id", "external_connections", ["tenant_id"], unique=False)
    op.create_index(
        "ix_external_connections_auto_sync",
        "external_connections",
        ["status", "is_auto_sync_enabled", "is_syncing", "next_sync_at"],
        unique=False,
    )

    op.create_table(
        "field_mappings",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("owner_id", sa.String(length=255), nullable=False),
        sa.Column("connection_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "resource",
            sa.String(length=255),
            nullable=False,
            comment="Table or collection name in the external source",
        ),
        sa.Column(
            "fields",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="Canonical field -> source column",
        ),
        sa.Column("validated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["connection_id"], ["external_connections.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "owner_id",
            "connection_id",
            "resource",
            name="uq_field_mappings_owner_connection_resource",
        ),
    )
    op.create_index("ix_field_mappings_owner_id", "field_mappings", ["owner_id"], unique=False)
    op.create_index("ix_field_mappings_connection_id", "field_mappings", ["connection_id"], unique=False)

    op.create_table(
        "mapping_validations",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("mapping_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("valid", sa.Boolean(), nullable=False),
        sa.Column(
            "details",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="Data quality metrics snapshot",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["mapping_id"], ["field_mappings.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_mapping_validations_mapping_id", "mapping_validations", ["mapping_id"], unique=False)

    op.create_table(
        "mapped_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("connection_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("mapping_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("external_id", sa.String(length=255), nullable=False),
        sa.Column("data", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("synced_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["connection_id"], ["external_connections.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["mapping_id"], ["field_mappings.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "connection_id",
            "mapping_id",
            "external_id",
            name="uq_mapped_records_identity",
        ),
    )
    op.create_index(
        "ix_mapped_records_mapping_active",
        "mapped_records",
        ["mapping_id", "is_active"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_mapped_records_mapping_active", table_name="mapped_records")
    op.drop_table("mapped_records")
    op.drop_index("ix_mapping_validations_mapping_id", table_name="mapping_validations")
    op.drop_table("mapping_validations")
    op.drop_index("ix_field_mappings_connection_id", table_name="field_mappings")
    op.drop_index("ix_field_mappings_owner_id", table_name="field_mappings")
    op.drop_table("field_mappings")
    op.drop_index("ix_external_connections_auto_sync", table_name="external_connections")
    op.drop_index("ix_external_connections_tenant_id", table_name="external_connections")
    op.drop_table("external_connections")

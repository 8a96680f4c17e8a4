"""
app/schemas/mapping.py

Request and response schemas for mapping validation and mirrored records.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base model exchanging camelCase JSON while keeping snake_case attributes.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MappingRequest(CamelModel):
    """
    Proposed mapping. ``fields`` stays untyped so missing keys become issues.
    """

    connection_id: uuid.UUID | None = None
    resource: str = Field(..., min_length=1)
    fields: dict[str, Any] = Field(default_factory=dict)
    validate_only: bool = False


class IssueResponse(CamelModel):
    field: str
    code: str
    message: str


class MappingFailureResponse(CamelModel):
    ok: Literal[False] = False
    issues: list[IssueResponse]


class PreviewRowResponse(CamelModel):
    pk: str
    status: str
    date: str
    contact: str
    last_touch: str = Field(..., alias="last_touch")


class PreviewHealthResponse(CamelModel):
    resource_exists: bool
    columns_mapped: bool
    sample_rows_found: int = Field(..., ge=0)
    last_validated: datetime


class QualityMetricsResponse(CamelModel):
    """
    contactNonNull is a ratio; dateParseSuccess and statusValid are flags.
    """

    row_count: int = Field(..., ge=0)
    contact_non_null: float = Field(..., ge=0.0, le=1.0)
    date_parse_success: bool
    status_valid: bool
    warnings: list[str] = Field(default_factory=list)


class MappingPreviewBody(CamelModel):
    rows: list[PreviewRowResponse]
    health: PreviewHealthResponse
    metrics: QualityMetricsResponse


class MappingPreviewResponse(CamelModel):
    ok: Literal[True] = True
    preview: MappingPreviewBody


class MappingSummaryResponse(CamelModel):
    resource: str
    fields: dict[str, str]
    metrics: QualityMetricsResponse


class MappingSavedResponse(CamelModel):
    ok: Literal[True] = True
    mapping_id: uuid.UUID
    summary: MappingSummaryResponse


class ConnectionSyncInfo(CamelModel):
    sync_frequency_minutes: int | None = None
    is_auto_sync_enabled: bool = False
    last_synced_at: datetime | None = None
    next_sync_at: datetime | None = None
    is_syncing: bool = False


class MappingListItem(CamelModel):
    id: uuid.UUID
    connection_id: uuid.UUID | None
    connection_name: str | None = None
    connection_type: str | None = None
    resource: str
    fields: dict[str, str]
    validated_at: datetime | None = None
    created_at: datetime | None = None
    sync_info: ConnectionSyncInfo | None = None


class MappingListResponse(CamelModel):
    ok: Literal[True] = True
    mappings: list[MappingListItem]


class MappedRecordResponse(CamelModel):
    id: uuid.UUID
    external_id: str
    data: dict[str, Any]
    is_active: bool
    synced_at: datetime


class MappedRecordListResponse(CamelModel):
    ok: Literal[True] = True
    mapping_id: uuid.UUID
    records: list[MappedRecordResponse]


class SourceColumnResponse(CamelModel):
    name: str
    type: str | None = None
    nullable: bool | None = None


class SourceColumnsResponse(CamelModel):
    ok: Literal[True] = True
    resource: str
    columns: list[SourceColumnResponse]

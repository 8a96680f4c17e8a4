"""
app/schemas/sync.py

Request and response schemas for sync-now and auto-sync endpoints.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import Field

from app.schemas.mapping import CamelModel


class SyncNowRequest(CamelModel):
    connection_id: uuid.UUID | None = None


class MappingSyncResultResponse(CamelModel):
    mapping_id: uuid.UUID
    resource: str
    inserted: int = Field(..., ge=0)
    updated: int = Field(..., ge=0)
    deactivated: int = Field(..., ge=0)
    total_external: int = Field(..., ge=0)
    total_mapped: int = Field(..., ge=0)
    success: bool
    error: str | None = None


class SyncNowResponse(CamelModel):
    ok: Literal[True] = True
    status: Literal["success", "partial"]
    last_synced_at: datetime
    next_sync_at: datetime | None = None
    results: list[MappingSyncResultResponse]


class SyncErrorResponse(CamelModel):
    ok: Literal[False] = False
    code: str | None = None
    message: str


class AutoSyncResultResponse(CamelModel):
    connection_id: uuid.UUID
    connection_name: str
    success: bool
    status: str | None = None
    error: str | None = None


class AutoSyncResponse(CamelModel):
    ok: Literal[True] = True
    message: str
    synced: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    results: list[AutoSyncResultResponse]

"""
app/domain/sync.py

Domain models describing reconciliation pass results.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime


class SyncStatus:
    SUCCESS = "success"
    PARTIAL = "partial"


@dataclass(frozen=True)
class MappingSyncResult:
    """
    Counts for one mapping within a reconciliation pass.
    """

    mapping_id: uuid.UUID
    resource: str
    success: bool
    inserted: int = 0
    updated: int = 0
    deactivated: int = 0
    total_external: int = 0
    total_mapped: int = 0
    error: str | None = None


@dataclass(frozen=True)
class SyncPassResult:
    """
    Outcome of one reconciliation pass over every mapping of a connection.
    """

    connection_id: uuid.UUID
    status: str
    last_synced_at: datetime
    next_sync_at: datetime | None
    results: list[MappingSyncResult] = field(default_factory=list)


@dataclass(frozen=True)
class AutoSyncOutcome:
    """
    Per-connection outcome of one auto-sync sweep.
    """

    connection_id: uuid.UUID
    connection_name: str
    success: bool
    status: str | None = None
    error: str | None = None

"""
app/services package marker.
"""

from app.services.mapping_service import (
    MappingPersistenceError,
    MappingValidationService,
    SourceUnavailableError,
    get_mapping_validation_service,
)
from app.services.sync_lock import ConnectionSyncLock, SyncInProgressError
from app.services.sync_service import (
    ConnectionNotFoundError,
    SyncPassError,
    SyncReconciler,
    get_sync_reconciler,
)

__all__ = [
    "ConnectionNotFoundError",
    "ConnectionSyncLock",
    "MappingPersistenceError",
    "MappingValidationService",
    "SourceUnavailableError",
    "SyncInProgressError",
    "SyncPassError",
    "SyncReconciler",
    "get_mapping_validation_service",
    "get_sync_reconciler",
]

"""
app/schemas package marker.
"""

from app.schemas.mapping import (
    MappedRecordListResponse,
    MappingFailureResponse,
    MappingListResponse,
    MappingPreviewResponse,
    MappingRequest,
    MappingSavedResponse,
    SourceColumnsResponse,
)
from app.schemas.sync import AutoSyncResponse, SyncErrorResponse, SyncNowRequest, SyncNowResponse

__all__ = [
    "AutoSyncResponse",
    "MappedRecordListResponse",
    "MappingFailureResponse",
    "MappingListResponse",
    "MappingPreviewResponse",
    "MappingRequest",
    "MappingSavedResponse",
    "SourceColumnsResponse",
    "SyncErrorResponse",
    "SyncNowRequest",
    "SyncNowResponse",
]

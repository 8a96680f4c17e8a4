"""
app/domain package marker.
"""

from app.domain.field_mapping import (
    CANONICAL_FIELDS,
    REQUIRED_CANONICAL_FIELDS,
    MappingFields,
    MappingPreview,
    MappingValidationOutcome,
    MissingCanonicalFieldsError,
    PreviewHealth,
    PreviewRow,
    QualityMetrics,
    ValidationIssue,
)
from app.domain.sync import AutoSyncOutcome, MappingSyncResult, SyncPassResult, SyncStatus

__all__ = [
    "AutoSyncOutcome",
    "CANONICAL_FIELDS",
    "MappingFields",
    "MappingPreview",
    "MappingSyncResult",
    "MappingValidationOutcome",
    "MissingCanonicalFieldsError",
    "PreviewHealth",
    "PreviewRow",
    "QualityMetrics",
    "REQUIRED_CANONICAL_FIELDS",
    "SyncPassResult",
    "SyncStatus",
    "ValidationIssue",
]

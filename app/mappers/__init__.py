"""
app/mappers package marker.
"""

from app.mappers.record_mapper import RAW_SNAPSHOT_KEY, RecordMapper, external_id_for

__all__ = [
    "RAW_SNAPSHOT_KEY",
    "RecordMapper",
    "external_id_for",
]

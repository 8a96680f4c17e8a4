"""
app/repositories package marker.
"""

from app.repositories.connection_repository import ConnectionRepository
from app.repositories.mapped_record_repository import MappedRecordRepository
from app.repositories.mapping_repository import MappingRepository

__all__ = [
    "ConnectionRepository",
    "MappedRecordRepository",
    "MappingRepository",
]

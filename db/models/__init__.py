"""
Model package exports.

Import every SQLAlchemy model here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.external_connection import ConnectionStatus, ExternalConnection
from db.models.field_mapping import FieldMapping, MappingValidation
from db.models.mapped_record import MappedRecord

__all__ = [
    "ConnectionStatus",
    "ExternalConnection",
    "FieldMapping",
    "MappingValidation",
    "MappedRecord",
]

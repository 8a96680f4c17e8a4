"""
app/validators package marker.
"""

from app.validators.data_quality import DataQualityScorer, parse_timestamp
from app.validators.mapping_validator import MappingValidator

__all__ = [
    "DataQualityScorer",
    "MappingValidator",
    "parse_timestamp",
]

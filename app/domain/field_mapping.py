"""
app/domain/field_mapping.py

Domain models for canonical field mappings, validation issues and previews.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

CANONICAL_FIELDS: tuple[str, ...] = ("status", "date", "contact", "pk", "last_touch")
REQUIRED_CANONICAL_FIELDS: tuple[str, ...] = ("status", "date", "contact")
DEFAULT_PRIMARY_KEY_COLUMN = "id"


class MissingCanonicalFieldsError(ValueError):
    """
    Raised when a raw mapping lacks one or more required canonical fields.
    """

    def __init__(self, missing: tuple[str, ...]) -> None:
        super().__init__(f"Missing required canonical fields: {', '.join(missing)}.")
        self.missing = missing


def _clean_column(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class MappingFields:
    """
    Canonical field -> source column mapping.

    status/date/contact are always set; pk and last_touch are optional.
    """

    status: str
    date: str
    contact: str
    pk: str | None = None
    last_touch: str | None = None

    @classmethod
    def parse(cls, raw: Mapping[str, Any]) -> MappingFields:
        """
        Build typed fields from an untyped mapping, ignoring unknown keys.
        """

        cleaned = {name: _clean_column(raw.get(name)) for name in CANONICAL_FIELDS}
        missing = tuple(name for name in REQUIRED_CANONICAL_FIELDS if cleaned[name] is None)
        if missing:
            raise MissingCanonicalFieldsError(missing)
        return cls(**cleaned)

    def items(self) -> list[tuple[str, str]]:
        """
        (canonical field, source column) pairs for every mapped field.
        """

        pairs: list[tuple[str, str]] = []
        for name in CANONICAL_FIELDS:
            column = getattr(self, name)
            if column:
                pairs.append((name, column))
        return pairs

    def columns(self) -> list[str]:
        """
        Distinct mapped source columns in canonical field order.
        """

        seen: dict[str, None] = {}
        for _, column in self.items():
            seen.setdefault(column, None)
        return list(seen)

    @property
    def primary_key_column(self) -> str:
        return self.pk or DEFAULT_PRIMARY_KEY_COLUMN

    def to_dict(self) -> dict[str, str]:
        return dict(self.items())


@dataclass(frozen=True)
class ValidationIssue:
    """
    One field-scoped problem found while validating a mapping.
    """

    field: str
    code: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "code": self.code, "message": self.message}


@dataclass(frozen=True)
class QualityMetrics:
    """
    Data quality scores for a sampled resource.

    contact_non_null is a ratio while date_parse_success and status_valid are
    booleans; consumers read this exact shape.
    """

    row_count: int
    contact_non_null: float
    date_parse_success: bool
    status_valid: bool
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rowCount": self.row_count,
            "contactNonNull": self.contact_non_null,
            "dateParseSuccess": self.date_parse_success,
            "statusValid": self.status_valid,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class PreviewRow:
    pk: str
    status: str
    date: str
    contact: str
    last_touch: str


@dataclass(frozen=True)
class PreviewHealth:
    resource_exists: bool
    columns_mapped: bool
    sample_rows_found: int
    last_validated: datetime


@dataclass(frozen=True)
class MappingPreview:
    rows: list[PreviewRow]
    health: PreviewHealth
    metrics: QualityMetrics


@dataclass(frozen=True)
class MappingValidationOutcome:
    """
    Result of one validate (and optionally save) request.

    Exactly one of issues / preview is populated.
    """

    issues: list[ValidationIssue] = field(default_factory=list)
    preview: MappingPreview | None = None
    mapping_id: uuid.UUID | None = None
    resource: str | None = None
    fields: MappingFields | None = None

    @property
    def ok(self) -> bool:
        return not self.issues

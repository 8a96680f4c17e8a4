"""
app/validators/mapping_validator.py

Structural validation of proposed canonical field mappings.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from app.connectors.base import ColumnInfo
from app.domain.field_mapping import MappingFields, MissingCanonicalFieldsError, ValidationIssue
from app.failure_codes import INVALID_COLUMN, REQUIRED_FIELD


class MappingValidator:
    """
    Checks required canonical fields and mapped columns against a live schema.

    Issues are collected rather than raised so a caller sees every problem
    with a mapping in one round trip.
    """

    def parse_fields(
        self,
        raw_fields: Mapping[str, Any],
    ) -> tuple[MappingFields | None, list[ValidationIssue]]:
        """
        Parse raw fields, returning one REQUIRED_FIELD issue per missing field.
        """

        try:
            return MappingFields.parse(raw_fields), []
        except MissingCanonicalFieldsError as exc:
            return None, [
                ValidationIssue(
                    field=name,
                    code=REQUIRED_FIELD,
                    message=f"{name} field is required",
                )
                for name in exc.missing
            ]

    def check_columns(
        self,
        *,
        fields: MappingFields,
        columns: Sequence[ColumnInfo],
        resource: str,
    ) -> list[ValidationIssue]:
        """
        Return one INVALID_COLUMN issue per mapped column missing from ``columns``.
        """

        available = {column.name for column in columns}
        return [
            ValidationIssue(
                field=canonical_field,
                code=INVALID_COLUMN,
                message=f"'{source_column}' is not a column in '{resource}' table",
            )
            for canonical_field, source_column in fields.items()
            if source_column not in available
        ]

"""
app/mappers/record_mapper.py

Projection of raw external rows onto canonical fields.
"""

from __future__ import annotations

from typing import Any, Mapping

from app.domain.field_mapping import MappingFields, PreviewRow
from app.validators.data_quality import parse_timestamp

RAW_SNAPSHOT_KEY = "_raw"


def external_id_for(row: Mapping[str, Any], pk_column: str) -> str:
    """
    String identity of a source row: pk column, then ``id``, else empty.
    """

    value = row.get(pk_column)
    if value is None:
        value = row.get("id")
    if value is None:
        return ""
    return str(value)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


class RecordMapper:
    """
    Maps raw source rows into mirrored payloads and preview rows.
    """

    def __init__(self, fields: MappingFields) -> None:
        self._fields = fields

    def to_mirror_payload(self, row: Mapping[str, Any]) -> dict[str, Any]:
        """
        Canonical projection of ``row`` with the raw row under ``_raw``.

        Only fields whose column is present in the row are copied.
        """

        payload: dict[str, Any] = {
            canonical_field: row[source_column]
            for canonical_field, source_column in self._fields.items()
            if source_column in row
        }
        payload[RAW_SNAPSHOT_KEY] = dict(row)
        return payload

    def to_preview_row(self, row: Mapping[str, Any], *, index: int) -> PreviewRow:
        """
        Preview projection; ``index`` is 0-based and backs a missing pk.
        """

        fields = self._fields
        pk_value = row.get(fields.pk) if fields.pk else None
        parsed_date = parse_timestamp(row.get(fields.date))
        return PreviewRow(
            pk=_as_text(pk_value) if pk_value not in (None, "") else str(index + 1),
            status=_as_text(row.get(fields.status)),
            date=parsed_date.isoformat() if parsed_date is not None else "",
            contact=_as_text(row.get(fields.contact)),
            last_touch=_as_text(row.get(fields.last_touch)) if fields.last_touch else "",
        )

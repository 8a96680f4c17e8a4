"""
app/validators/data_quality.py

Advisory data quality scoring over a sampled external resource.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping, Sequence

import pandas as pd

from app.domain.field_mapping import MappingFields, QualityMetrics

# Tried in order after ISO 8601.
TIMESTAMP_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%Y/%m/%d %H:%M:%S",
)

WARNING_THRESHOLD = 0.3
BOOLEAN_THRESHOLD = 0.5


def _as_timestamp_text(value: Any) -> str | None:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_timestamps(values: pd.Series) -> pd.Series:
    """
    Parse a column of source values into UTC timestamps; NaT where unparseable.

    Naive values are taken as UTC. Non-string scalars other than dates never parse.
    """

    text = values.map(_as_timestamp_text).astype(object)
    parsed = pd.to_datetime(text, errors="coerce", utc=True, format="ISO8601")
    for fmt in TIMESTAMP_FORMATS:
        if not parsed.isna().any():
            break
        parsed = parsed.fillna(pd.to_datetime(text, errors="coerce", utc=True, format=fmt))
    return parsed


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse one source value into a timezone-aware datetime, or None.
    """

    parsed = parse_timestamps(pd.Series([value], dtype=object)).iloc[0]
    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def present(values: pd.Series) -> pd.Series:
    """
    True where a value is non-null and not blank once stringified.
    """

    return values.notna() & values.astype(str).str.strip().ne("")


class DataQualityScorer:
    """
    Scores sampled rows for contact, date and status usability.

    Responsibilities:
        - Compute per-field ratios over the sample.
        - Emit a warning for every ratio below 30%.

    Not responsible for:
        - Rejecting a mapping; results are advisory.
    """

    def score(self, rows: Sequence[Mapping[str, Any]], fields: MappingFields) -> QualityMetrics:
        frame = pd.DataFrame(
            [
                {
                    "contact": row.get(fields.contact),
                    "date": row.get(fields.date),
                    "status": row.get(fields.status),
                }
                for row in rows
            ],
            columns=["contact", "date", "status"],
            dtype=object,
        )

        row_count = len(frame)
        contact_ratio = self._ratio(present(frame["contact"]), row_count)
        date_ratio = self._ratio(parse_timestamps(frame["date"]).notna(), row_count)
        status_ratio = self._ratio(present(frame["status"]), row_count)

        warnings: list[str] = []
        if row_count:
            if contact_ratio < WARNING_THRESHOLD:
                warnings.append(
                    f"contact field is populated in only {self._percent(contact_ratio)}% of sampled rows"
                )
            if date_ratio < WARNING_THRESHOLD:
                warnings.append(
                    f"date field parses as a timestamp in only {self._percent(date_ratio)}% of sampled rows"
                )
            if status_ratio < WARNING_THRESHOLD:
                warnings.append(
                    f"status field is populated in only {self._percent(status_ratio)}% of sampled rows"
                )

        return QualityMetrics(
            row_count=row_count,
            contact_non_null=contact_ratio,
            date_parse_success=date_ratio > BOOLEAN_THRESHOLD,
            status_valid=status_ratio > BOOLEAN_THRESHOLD,
            warnings=warnings,
        )

    @staticmethod
    def _ratio(flags: pd.Series, row_count: int) -> float:
        if row_count == 0:
            return 0.0
        return float(flags.mean())

    @staticmethod
    def _percent(ratio: float) -> int:
        return int(round(ratio * 100))

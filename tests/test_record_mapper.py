from __future__ import annotations

import unittest

from app.domain.field_mapping import MappingFields
from app.mappers.record_mapper import RAW_SNAPSHOT_KEY, RecordMapper, external_id_for


class TestExternalId(unittest.TestCase):
    def test_prefers_configured_pk(self) -> None:
        self.assertEqual(external_id_for({"deal_id": 7, "id": 1}, "deal_id"), "7")

    def test_falls_back_to_id_column(self) -> None:
        self.assertEqual(external_id_for({"id": 3}, "deal_id"), "3")

    def test_zero_is_a_valid_identity(self) -> None:
        self.assertEqual(external_id_for({"id": 0}, "id"), "0")

    def test_missing_identity_is_empty(self) -> None:
        self.assertEqual(external_id_for({"name": "x"}, "deal_id"), "")


class TestRecordMapper(unittest.TestCase):
    def setUp(self) -> None:
        self.fields = MappingFields(status="state", date="closed_on", contact="email", last_touch="touched")
        self.mapper = RecordMapper(self.fields)

    def test_mirror_payload_copies_present_columns_and_raw_row(self) -> None:
        row = {"id": 1, "state": "won", "email": None, "extra": "x"}

        payload = self.mapper.to_mirror_payload(row)

        self.assertEqual(payload["status"], "won")
        self.assertIn("contact", payload)
        self.assertIsNone(payload["contact"])
        self.assertNotIn("date", payload)
        self.assertNotIn("last_touch", payload)
        self.assertEqual(payload[RAW_SNAPSHOT_KEY], row)

    def test_preview_row_uses_position_when_pk_unmapped(self) -> None:
        preview = self.mapper.to_preview_row(
            {"state": "open", "closed_on": "2026-01-02", "email": "a@example.com"},
            index=4,
        )

        self.assertEqual(preview.pk, "5")
        self.assertEqual(preview.status, "open")
        self.assertTrue(preview.date.startswith("2026-01-02"))
        self.assertEqual(preview.last_touch, "")

    def test_preview_row_blanks_unparseable_date(self) -> None:
        preview = self.mapper.to_preview_row({"state": "open", "closed_on": "soon", "email": ""}, index=0)

        self.assertEqual(preview.date, "")
        self.assertEqual(preview.contact, "")


if __name__ == "__main__":
    unittest.main()

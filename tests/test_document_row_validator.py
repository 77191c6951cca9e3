from __future__ import annotations

import unittest

import pytest

from app.domain.document_import import REQUIRED_COLUMNS, ImportRow
from app.validators.document_row_validator import (
    DocumentRowValidator,
    clean_numeric,
    missing_required_fields,
    parse_int,
    validate_document_row,
)


def _row(row_number: int = 2, **overrides: str | None) -> ImportRow:
    values: dict[str, str | None] = {
        "id": "101",
        "category_id": "3",
        "subcategory_id": "7",
        "design_no": " AB1001 ",
        "description": "Rose border",
        "extension": "DST",
        "file_type": "Embroidery",
        "total_area": "1,234.5 sq mm",
        "duration_min": "12.5min",
        "total_switches": "42",
        "colours": "6",
        "width": "120.0mm",
        "height": "80mm",
        "stabilizer_required": "Yes",
        "design_options": "Cap",
        "design_information": "Satin fill",
        "confidential": "No",
        "transfer": "No",
    }
    values.update(overrides)
    return ImportRow(row_number=row_number, values=values)


@pytest.mark.parametrize(
    ("raw", "default", "expected"),
    [
        ("1,234.5kg", 0, 1234.5),
        ("", 0, 0),
        ("abc", 0, 0),
        (None, 7, 7),
        ("-12.75 cm", 0, -12.75),
        (".5", 0, 0.5),
        ("  3  ", 0, 3.0),
    ],
)
def test_clean_numeric(raw: str | None, default: float, expected: float) -> None:
    assert clean_numeric(raw, default) == expected


@pytest.mark.parametrize(
    ("raw", "default", "expected"),
    [
        ("12abc", 0, 12),
        ("7.9", 0, 7),
        ("", 1, 1),
        ("n/a", 1, 1),
        ("-4", 0, -4),
    ],
)
def test_parse_int(raw: str, default: int, expected: int) -> None:
    assert parse_int(raw, default) == expected


class TestValidateDocumentRow(unittest.TestCase):
    def test_cleans_every_field(self) -> None:
        result = validate_document_row(_row())

        self.assertTrue(result.is_valid)
        document = result.document
        assert document is not None
        self.assertEqual(document.id, 101)
        self.assertEqual(document.category_id, 3)
        self.assertEqual(document.subcategory_id, 7)
        self.assertEqual(document.design_no, "AB1001")
        self.assertEqual(document.total_area, 1234.5)
        self.assertEqual(document.duration_min, 12.5)
        self.assertEqual(document.total_switches, 42)
        self.assertEqual(document.colours, 6)
        self.assertEqual(document.width, 120.0)
        self.assertEqual(document.height, 80.0)
        self.assertEqual(set(document.to_payload()), set(REQUIRED_COLUMNS))

    def test_unparseable_integers_fall_back_to_defaults(self) -> None:
        result = validate_document_row(
            _row(id="x", category_id="cat", subcategory_id="sub", total_switches="many", colours="?")
        )

        document = result.document
        assert document is not None
        self.assertEqual(document.id, 0)
        self.assertEqual(document.category_id, 1)
        self.assertEqual(document.subcategory_id, 1)
        self.assertEqual(document.total_switches, 0)
        self.assertEqual(document.colours, 0)

    def test_missing_and_blank_fields_are_reported_in_column_order(self) -> None:
        row = _row(row_number=9, design_no="   ", width=None, description="")

        result = validate_document_row(row)

        self.assertFalse(result.is_valid)
        self.assertIsNone(result.document)
        self.assertEqual([error.column for error in result.errors], ["design_no", "description", "width"])
        self.assertTrue(all(error.row_number == 9 for error in result.errors))
        self.assertEqual(missing_required_fields(row), ["design_no", "description", "width"])

    def test_lone_space_in_required_column_rejects_the_row(self) -> None:
        result = validate_document_row(_row(transfer=" "))

        self.assertFalse(result.is_valid)
        self.assertEqual([error.column for error in result.errors], ["transfer"])
        self.assertEqual(result.errors[0].value, " ")

    def test_validation_is_idempotent(self) -> None:
        row = _row(total_area="9.9.9")

        self.assertEqual(validate_document_row(row), validate_document_row(row))


class TestDocumentRowValidator:
    def test_splits_accepted_and_rejected_rows(self) -> None:
        rows = [_row(row_number=2), _row(row_number=3, design_no=""), _row(row_number=4, design_no="CD2")]

        accepted, rejected = DocumentRowValidator().validate_rows(rows)

        assert [document.design_no for document in accepted] == ["AB1001", "CD2"]
        assert [result.row_number for result in rejected] == [3]

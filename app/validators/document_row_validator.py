"""
app/validators/document_row_validator.py

Row-level validation and type coercion for the design catalog import.

Everything here is a pure function of the row values: validating the same
row twice always yields the same result.
"""

from __future__ import annotations

import re
from typing import Any

from app.domain.document_import import (
    REQUIRED_COLUMNS,
    CleanedDocument,
    DocumentValidationResult,
    ImportRow,
    RowValidationError,
)

_NON_NUMERIC = re.compile(r"[^\d.\-]")
_LEADING_FLOAT = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")
_LEADING_INT = re.compile(r"[+-]?\d+")

_INTEGER_DEFAULTS: dict[str, int] = {
    "id": 0,
    "category_id": 1,
    "subcategory_id": 1,
    "total_switches": 0,
    "colours": 0,
}
_NUMERIC_FIELDS: tuple[str, ...] = ("total_area", "duration_min", "width", "height")
_TEXT_FIELDS: tuple[str, ...] = (
    "design_no",
    "description",
    "extension",
    "file_type",
    "stabilizer_required",
    "design_options",
    "design_information",
    "confidential",
    "transfer",
)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple)):
        return all(str(item).strip() == "" for item in value)
    return str(value).strip() == ""


def clean_numeric(value: Any, default: float = 0) -> float:
    """
    Parse a decorated number such as ``"1,234.5kg"``.

    Every character other than digits, ``.`` and ``-`` is dropped, then the
    longest leading float is parsed. Blank or unparseable input returns
    ``default``.
    """

    if _is_blank(value):
        return default
    cleaned = _NON_NUMERIC.sub("", str(value))
    match = _LEADING_FLOAT.match(cleaned)
    if match is None:
        return default
    return float(match.group(0))


def parse_int(value: Any, default: int = 0) -> int:
    """
    Parse the leading integer of ``value`` (``"12abc" -> 12``, ``"7.9" -> 7``).
    """

    if _is_blank(value):
        return default
    match = _LEADING_INT.match(str(value).strip())
    if match is None:
        return default
    return int(match.group(0))


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def missing_required_fields(row: ImportRow) -> list[str]:
    """
    Return required columns whose value is missing or blank, in canonical order.
    """

    return [column for column in REQUIRED_COLUMNS if _is_blank(row.get(column))]


def validate_document_row(row: ImportRow) -> DocumentValidationResult:
    """
    Validate one CSV row and coerce it into a CleanedDocument.

    Whitespace-only values count as missing, which is stricter than a plain
    truthiness check: a lone space in a required column rejects the row.
    """

    missing = missing_required_fields(row)
    if missing:
        return DocumentValidationResult(
            row_number=row.row_number,
            errors=tuple(
                RowValidationError(
                    row_number=row.row_number,
                    column=column,
                    message="Required value is missing.",
                    value=None if row.get(column) is None else str(row.get(column)),
                )
                for column in missing
            ),
        )

    values: dict[str, Any] = {}
    for column, default in _INTEGER_DEFAULTS.items():
        values[column] = parse_int(row.get(column), default)
    for column in _NUMERIC_FIELDS:
        values[column] = clean_numeric(row.get(column))
    for column in _TEXT_FIELDS:
        values[column] = _clean_text(row.get(column))

    return DocumentValidationResult(
        row_number=row.row_number,
        document=CleanedDocument(**values),
    )


class DocumentRowValidator:
    """
    Folds row validation over a chunk, keeping both accepted documents and
    structured rejections.
    """

    def validate_rows(
        self,
        rows: list[ImportRow],
    ) -> tuple[list[CleanedDocument], list[DocumentValidationResult]]:
        accepted: list[CleanedDocument] = []
        rejected: list[DocumentValidationResult] = []
        for row in rows:
            result = validate_document_row(row)
            if result.is_valid and result.document is not None:
                accepted.append(result.document)
            else:
                rejected.append(result)
        return accepted, rejected

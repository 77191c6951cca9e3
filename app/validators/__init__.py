"""
app/validators package marker.
"""

from app.validators.document_row_validator import DocumentRowValidator, clean_numeric, validate_document_row

__all__ = [
    "DocumentRowValidator",
    "clean_numeric",
    "validate_document_row",
]

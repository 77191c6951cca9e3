"""
app/domain package marker.
"""

from app.domain.document_import import (
    ChunkResult,
    CleanedDocument,
    ImportJobSnapshot,
    ImportRow,
    RowValidationError,
)

__all__ = [
    "ChunkResult",
    "CleanedDocument",
    "ImportJobSnapshot",
    "ImportRow",
    "RowValidationError",
]

"""
app/services package marker.
"""

from app.services.document_import_service import (
    ChunkInFlightError,
    CSVHeaderValidationError,
    DocumentImportJob,
    DocumentImportService,
    MissingColumnsError,
    get_document_import_service,
)
from app.services.preview_session_service import (
    PreviewSessionService,
    get_preview_session_service,
)

__all__ = [
    "ChunkInFlightError",
    "CSVHeaderValidationError",
    "DocumentImportJob",
    "DocumentImportService",
    "MissingColumnsError",
    "get_document_import_service",
    "PreviewSessionService",
    "get_preview_session_service",
]

"""
app/schemas package marker.
"""

from app.schemas.design_preview import (
    BackgroundColorRequest,
    LoadDesignRequest,
    MoveObjectRequest,
    PageChangeResponse,
    PreviewCreateRequest,
    PreviewStateResponse,
    ScaleObjectRequest,
)
from app.schemas.document_import import (
    CatalogClearedResponse,
    ChunkResultResponse,
    ImportJobResponse,
    ProcessChunkResponse,
    RowValidationErrorResponse,
)

__all__ = [
    "BackgroundColorRequest",
    "CatalogClearedResponse",
    "ChunkResultResponse",
    "ImportJobResponse",
    "LoadDesignRequest",
    "MoveObjectRequest",
    "PageChangeResponse",
    "PreviewCreateRequest",
    "PreviewStateResponse",
    "ProcessChunkResponse",
    "RowValidationErrorResponse",
    "ScaleObjectRequest",
]

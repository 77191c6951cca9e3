"""
app/api/routers package marker.
"""

from app.api.routers.design_preview import router as design_preview_router
from app.api.routers.document_import import router as document_import_router

__all__ = [
    "design_preview_router",
    "document_import_router",
]

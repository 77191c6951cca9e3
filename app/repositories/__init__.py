"""
app/repositories package marker.
"""

from app.repositories.document_repository import DesignAssetPath, DocumentRepository
from app.repositories.errors import (
    CatalogTruncateError,
    DesignNotFoundError,
    DocumentPersistenceError,
    DocumentRepositoryError,
)

__all__ = [
    "CatalogTruncateError",
    "DesignAssetPath",
    "DesignNotFoundError",
    "DocumentPersistenceError",
    "DocumentRepository",
    "DocumentRepositoryError",
]

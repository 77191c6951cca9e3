"""
Repository-layer exceptions for the design catalog.
"""

from __future__ import annotations


class DocumentRepositoryError(Exception):
    """Base exception for catalog repository failures."""


class DocumentPersistenceError(DocumentRepositoryError):
    """Raised when a batch of catalog rows cannot be upserted."""


class CatalogTruncateError(DocumentRepositoryError):
    """Raised when clearing the catalog table fails."""


class DesignNotFoundError(DocumentRepositoryError):
    """Raised when a design number has no catalog row or taxonomy."""

"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.category import Category, Subcategory
from db.models.document import Document

__all__ = [
    "Category",
    "Document",
    "Subcategory",
]

"""
db/models/category.py

Catalog taxonomy. Category and subcategory names also form the folder path of
each design's assets in object storage.
"""

from __future__ import annotations

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin


class Category(Base, TimestampMixin):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(
        String(8),
        nullable=False,
        unique=True,
        comment="Two-character prefix shared by the category's design numbers",
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    subcategories: Mapped[list["Subcategory"]] = relationship(
        "Subcategory",
        back_populates="category",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Subcategory(Base, TimestampMixin):
    __tablename__ = "subcategories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    category_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    category: Mapped[Category] = relationship("Category", back_populates="subcategories")

    __table_args__ = (Index("ix_subcategories_category_id", "category_id"),)

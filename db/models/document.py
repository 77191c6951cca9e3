"""
db/models/document.py

Design catalog record. One row per embroidery design, keyed for upserts by
its business design number.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Float, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class Document(Base, TimestampMixin):
    """
    A design in the catalog.

    ``design_no`` is the natural key used as the conflict target of bulk
    imports; re-importing a design number overwrites the stored row.
    """

    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    category_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
    )
    subcategory_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("subcategories.id", ondelete="RESTRICT"),
        nullable=False,
    )
    design_no: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    extension: Mapped[str] = mapped_column(Text, nullable=False, default="")
    file_type: Mapped[str] = mapped_column(Text, nullable=False, default="")
    total_area: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    duration_min: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_switches: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    colours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    width: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    height: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    stabilizer_required: Mapped[str] = mapped_column(Text, nullable=False, default="")
    design_options: Mapped[str] = mapped_column(Text, nullable=False, default="")
    design_information: Mapped[str] = mapped_column(Text, nullable=False, default="")
    confidential: Mapped[str] = mapped_column(Text, nullable=False, default="")
    transfer: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (
        Index("ix_documents_category_id", "category_id"),
        Index("ix_documents_subcategory_id", "subcategory_id"),
    )

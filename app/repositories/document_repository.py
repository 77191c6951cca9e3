"""
app/repositories/document_repository.py

Persistence layer for the design catalog.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select, text
from sqlalchemy.dialects.postgresql import Insert, insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.document_import import CONFLICT_KEY, CleanedDocument
from app.repositories.errors import CatalogTruncateError, DesignNotFoundError, DocumentPersistenceError
from db.models.category import Category, Subcategory
from db.models.document import Document

logger = logging.getLogger(__name__)

_DEFAULT_BATCH_SIZE = 500


@dataclass(frozen=True)
class DesignAssetPath:
    """
    Taxonomy names that make up a design's folder in object storage.
    """

    design_no: str
    category_name: str
    subcategory_name: str


class DocumentRepository:
    """
    Upserts catalog rows keyed on ``design_no`` and answers asset path lookups.

    Owns its sessions: an import job outlives any single request session, so
    every call opens and closes its own unit of work.
    """

    def __init__(self, *, session_factory: Callable[[], Session] | None = None) -> None:
        if session_factory is None:
            from db.session import SessionLocal

            self._session_factory: Callable[[], Session] = SessionLocal
        else:
            self._session_factory = session_factory

    def upsert_documents(
        self,
        documents: Sequence[CleanedDocument],
        *,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> int:
        """
        Insert-or-overwrite documents in sub-batches inside one transaction.

        A failing sub-batch rolls back the whole call and raises
        DocumentPersistenceError.
        """

        if not documents:
            return 0

        payloads = self._deduplicate_payloads([document.to_payload() for document in documents])
        size = max(1, batch_size)
        written = 0
        try:
            with self._session_factory() as session:
                with session.begin():
                    for start in range(0, len(payloads), size):
                        sub_batch = payloads[start : start + size]
                        session.execute(self.build_upsert_statement(sub_batch))
                        written += len(sub_batch)
                        logger.debug(
                            "Upserted catalog sub-batch offset=%s size=%s first_design_no=%s",
                            start,
                            len(sub_batch),
                            sub_batch[0][CONFLICT_KEY],
                        )
        except SQLAlchemyError as exc:
            raise DocumentPersistenceError("Failed to upsert catalog documents.") from exc
        return written

    @staticmethod
    def build_upsert_statement(payloads: Sequence[dict[str, Any]]) -> Insert:
        """
        Build ``INSERT ... ON CONFLICT (design_no) DO UPDATE`` for one sub-batch.
        """

        stmt = insert(Document).values(list(payloads))
        updatable = [
            column.name
            for column in Document.__table__.columns
            if column.name not in {CONFLICT_KEY, "created_at", "updated_at"}
        ]
        set_: dict[str, Any] = {name: stmt.excluded[name] for name in updatable}
        set_["updated_at"] = func.now()
        return stmt.on_conflict_do_update(index_elements=[CONFLICT_KEY], set_=set_)

    def truncate(self) -> None:
        """
        Remove every catalog row.
        """

        try:
            with self._session_factory() as session:
                with session.begin():
                    session.execute(text(f"TRUNCATE TABLE {Document.__tablename__}"))
        except SQLAlchemyError as exc:
            raise CatalogTruncateError("Failed to clear the documents table.") from exc

    def get_design_path(self, design_no: str) -> DesignAssetPath:
        """
        Resolve the category and subcategory names of one design.
        """

        stmt = (
            select(Document.design_no, Category.name, Subcategory.name)
            .join(Category, Category.id == Document.category_id)
            .join(Subcategory, Subcategory.id == Document.subcategory_id)
            .where(Document.design_no == design_no)
        )
        with self._session_factory() as session:
            row = session.execute(stmt).first()

        if row is None:
            raise DesignNotFoundError(f"Design {design_no!r} not found.")
        return DesignAssetPath(
            design_no=row[0],
            category_name=row[1],
            subcategory_name=row[2],
        )

    @staticmethod
    def _deduplicate_payloads(payloads: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
        # Postgres refuses to update the same row twice in one statement;
        # the last occurrence of a design number wins.
        by_key: dict[str, dict[str, Any]] = {}
        for payload in payloads:
            key = payload[CONFLICT_KEY]
            by_key.pop(key, None)
            by_key[key] = payload
        return list(by_key.values())

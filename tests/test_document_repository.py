from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

import pytest
from sqlalchemy import Text
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError
from sqlalchemy.schema import CreateTable

from app.domain.document_import import CleanedDocument
from app.repositories.document_repository import DocumentRepository
from app.repositories.errors import CatalogTruncateError, DesignNotFoundError, DocumentPersistenceError
from db.models.document import Document


def _document(design_no: str, description: str = "desc") -> CleanedDocument:
    return CleanedDocument(
        id=1,
        category_id=1,
        subcategory_id=1,
        design_no=design_no,
        description=description,
        extension="DST",
        file_type="Embroidery",
        total_area=1.0,
        duration_min=2.0,
        total_switches=3,
        colours=4,
        width=5.0,
        height=6.0,
        stabilizer_required="No",
        design_options="",
        design_information="",
        confidential="No",
        transfer="No",
    )


class _Result:
    def __init__(self, row: Any) -> None:
        self._row = row

    def first(self) -> Any:
        return self._row


class FakeSession:
    def __init__(self, *, fail_on_execute: int | None = None, row: Any = None) -> None:
        self.statements: list[Any] = []
        self.committed = False
        self.rolled_back = False
        self._fail_on_execute = fail_on_execute
        self._row = row

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        return None

    @contextmanager
    def begin(self) -> Iterator["FakeSession"]:
        try:
            yield self
        except Exception:
            self.rolled_back = True
            raise
        self.committed = True

    def execute(self, statement: Any) -> _Result:
        self.statements.append(statement)
        if self._fail_on_execute is not None and len(self.statements) == self._fail_on_execute:
            raise OperationalError("INSERT", {}, Exception("connection reset"))
        return _Result(self._row)


def _compile(statement: Any) -> str:
    return str(statement.compile(dialect=postgresql.dialect()))


class TestUpsertStatement:
    def test_conflict_target_is_design_no_and_all_columns_are_overwritten(self) -> None:
        statement = DocumentRepository.build_upsert_statement([_document("AB1").to_payload()])

        sql = _compile(statement)

        assert "INSERT INTO documents" in sql
        assert "ON CONFLICT (design_no) DO UPDATE SET" in sql
        assert "description = excluded.description" in sql
        assert "total_switches = excluded.total_switches" in sql
        assert "updated_at = now()" in sql
        assert "design_no = excluded.design_no" not in sql
        assert "created_at = excluded.created_at" not in sql


class TestDocumentRepository:
    def test_upserts_in_sub_batches_inside_one_transaction(self) -> None:
        session = FakeSession()
        repository = DocumentRepository(session_factory=lambda: session)

        written = repository.upsert_documents([_document(f"AB{i}") for i in range(5)], batch_size=2)

        assert written == 5
        assert len(session.statements) == 3
        assert session.committed

    def test_duplicate_design_numbers_keep_the_last_occurrence(self) -> None:
        session = FakeSession()
        repository = DocumentRepository(session_factory=lambda: session)

        written = repository.upsert_documents([_document("AB1", "first"), _document("AB1", "second")])

        assert written == 1
        params = session.statements[0].compile(dialect=postgresql.dialect()).params
        assert "second" in params.values()
        assert "first" not in params.values()

    def test_failed_sub_batch_rolls_back_and_raises(self) -> None:
        session = FakeSession(fail_on_execute=2)
        repository = DocumentRepository(session_factory=lambda: session)

        with pytest.raises(DocumentPersistenceError):
            repository.upsert_documents([_document(f"AB{i}") for i in range(4)], batch_size=2)

        assert session.rolled_back
        assert not session.committed

    def test_empty_input_touches_nothing(self) -> None:
        session = FakeSession()

        assert DocumentRepository(session_factory=lambda: session).upsert_documents([]) == 0
        assert session.statements == []

    def test_truncate(self) -> None:
        session = FakeSession()

        DocumentRepository(session_factory=lambda: session).truncate()

        assert str(session.statements[0]) == "TRUNCATE TABLE documents"
        assert session.committed

    def test_truncate_failure(self) -> None:
        session = FakeSession(fail_on_execute=1)

        with pytest.raises(CatalogTruncateError):
            DocumentRepository(session_factory=lambda: session).truncate()

    def test_design_path_lookup(self) -> None:
        session = FakeSession(row=("AB1001", "Florals", "Roses"))

        path = DocumentRepository(session_factory=lambda: session).get_design_path("AB1001")

        assert (path.design_no, path.category_name, path.subcategory_name) == ("AB1001", "Florals", "Roses")
        sql = _compile(session.statements[0])
        assert "JOIN categories" in sql
        assert "JOIN subcategories" in sql

    def test_unknown_design(self) -> None:
        session = FakeSession(row=None)

        with pytest.raises(DesignNotFoundError):
            DocumentRepository(session_factory=lambda: session).get_design_path("ZZ0000")


class TestDocumentTable:
    @pytest.mark.parametrize(
        "column",
        ["design_no", "extension", "file_type", "stabilizer_required", "confidential", "transfer"],
    )
    def test_text_columns_have_no_length_limit(self, column: str) -> None:
        column_type = Document.__table__.c[column].type

        assert isinstance(column_type, Text)
        assert column_type.length is None

    def test_long_design_values_fit_the_table(self) -> None:
        ddl = str(CreateTable(Document.__table__).compile(dialect=postgresql.dialect()))

        assert "VARCHAR" not in ddl
        assert "design_no TEXT NOT NULL" in ddl

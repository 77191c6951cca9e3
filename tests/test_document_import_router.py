"""
tests/test_document_import_router.py

HTTP contract of the catalog import endpoints, with an in-memory store.
"""

from __future__ import annotations

import io

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.routers.document_import import router
from app.domain.document_import import REQUIRED_COLUMNS
from app.repositories.errors import CatalogTruncateError
from app.services.document_import_service import DocumentImportService, get_document_import_service


class MemoryStore:
    def __init__(self, *, fail_truncate: bool = False) -> None:
        self.rows: dict[str, object] = {}
        self._fail_truncate = fail_truncate

    def upsert_documents(self, documents, *, batch_size: int = 500) -> int:  # noqa: ANN001
        for document in documents:
            self.rows[document.design_no] = document
        return len(documents)

    def truncate(self) -> None:
        if self._fail_truncate:
            raise CatalogTruncateError("permission denied for table documents")
        self.rows.clear()


def _csv(row_count: int, *, columns: tuple[str, ...] = REQUIRED_COLUMNS) -> bytes:
    lines = [",".join(columns)]
    for index in range(1, row_count + 1):
        values = {column: "1" for column in columns}
        values.update(
            design_no=f"AB{index:04d}",
            description="Rose border",
            extension="DST",
            file_type="Embroidery",
            stabilizer_required="No",
            design_options="Standard",
            design_information="Satin stitch",
            confidential="No",
            transfer="No",
        )
        lines.append(",".join(values[column] for column in columns))
    return ("\n".join(lines) + "\n").encode("utf-8")


def _client(store: MemoryStore, *, chunk_size: int = 2) -> TestClient:
    service = DocumentImportService(store=store, chunk_size=chunk_size)
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_document_import_service] = lambda: service
    return TestClient(app)


def _upload(client: TestClient, content: bytes, *, filename: str = "designs.csv", content_type: str = "text/csv"):
    return client.post("/documents/imports", files={"file": (filename, io.BytesIO(content), content_type)})


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


def test_upload_creates_a_loaded_job(store: MemoryStore) -> None:
    response = _upload(_client(store), _csv(3))

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "loaded"
    assert body["total_rows"] == 3
    assert body["total_chunks"] == 2
    assert body["progress"] == 0
    assert body["has_next"] is True
    assert store.rows == {}


def test_non_csv_upload_is_rejected(store: MemoryStore) -> None:
    response = _upload(_client(store), b"{}", filename="designs.json", content_type="application/json")

    assert response.status_code == 400
    assert response.json()["detail"] == "Please upload a valid CSV file"


def test_missing_columns_are_listed(store: MemoryStore) -> None:
    columns = tuple(column for column in REQUIRED_COLUMNS if column != "colours")

    response = _upload(_client(store), _csv(1, columns=columns))

    assert response.status_code == 400
    assert response.json()["detail"]["missing_columns"] == ["colours"]


def test_chunks_advance_one_request_at_a_time(store: MemoryStore) -> None:
    client = _client(store)
    job_id = _upload(client, _csv(3)).json()["job_id"]

    first = client.post(f"/documents/imports/{job_id}/next").json()
    assert first["chunk"]["successful"] == 2
    assert first["job"]["progress"] == 50
    assert len(store.rows) == 2

    second = client.post(f"/documents/imports/{job_id}/next").json()
    assert second["job"]["status"] == "complete"
    assert second["job"]["progress"] == 100
    assert second["job"]["counters"] == {"processed": 3, "successful": 3, "failed": 0}

    done = client.post(f"/documents/imports/{job_id}/next")
    assert done.status_code == 200
    assert done.json()["chunk"] is None

    assert client.get(f"/documents/imports/{job_id}").json()["current_chunk"] == 2


def test_unknown_job_is_404(store: MemoryStore) -> None:
    client = _client(store)

    assert client.get("/documents/imports/nope").status_code == 404
    assert client.post("/documents/imports/nope/next").status_code == 404
    assert client.delete("/documents/imports/nope").status_code == 404


def test_discarded_job_is_gone(store: MemoryStore) -> None:
    client = _client(store)
    job_id = _upload(client, _csv(1)).json()["job_id"]

    assert client.delete(f"/documents/imports/{job_id}").status_code == 204
    assert client.get(f"/documents/imports/{job_id}").status_code == 404


def test_clear_catalog_requires_confirmation(store: MemoryStore) -> None:
    client = _client(store)
    job_id = _upload(client, _csv(1)).json()["job_id"]
    client.post(f"/documents/imports/{job_id}/next")

    assert client.delete("/documents").status_code == 400
    assert store.rows

    response = client.delete("/documents", params={"confirm": "true"})
    assert response.status_code == 200
    assert response.json()["cleared"] is True
    assert store.rows == {}


def test_clear_catalog_failure_is_500() -> None:
    response = _client(MemoryStore(fail_truncate=True)).delete("/documents", params={"confirm": "true"})

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to clear documents"

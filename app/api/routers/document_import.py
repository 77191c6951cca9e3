"""
app/api/routers/document_import.py

Design catalog import HTTP endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response, UploadFile, status

from app.api.dependencies import get_csv_upload
from app.domain.document_import import ChunkResult, ImportJobSnapshot
from app.repositories.errors import CatalogTruncateError
from app.schemas.document_import import (
    CatalogClearedResponse,
    ChunkResultResponse,
    ImportCountersResponse,
    ImportJobResponse,
    NotificationResponse,
    ProcessChunkResponse,
    RowValidationErrorResponse,
)
from app.services.document_import_service import (
    ChunkInFlightError,
    CSVHeaderValidationError,
    DocumentImportService,
    ImportJobNotFoundError,
    MissingColumnsError,
    get_document_import_service,
)

router = APIRouter(tags=["documents"])


def _chunk_response(result: ChunkResult | None) -> ChunkResultResponse | None:
    if result is None:
        return None
    return ChunkResultResponse(
        chunk_index=result.chunk_index,
        rows=result.rows,
        successful=result.successful,
        failed=result.failed,
        rejected_rows=result.rejected_rows,
        persisted=result.persisted,
        error=result.error,
    )


def _job_response(snapshot: ImportJobSnapshot) -> ImportJobResponse:
    return ImportJobResponse(
        job_id=snapshot.job_id,
        file_name=snapshot.file_name,
        status=snapshot.status,
        total_rows=snapshot.total_rows,
        total_chunks=snapshot.total_chunks,
        chunk_size=snapshot.chunk_size,
        current_chunk=snapshot.current_chunk,
        progress=snapshot.progress,
        counters=ImportCountersResponse(
            processed=snapshot.counters.processed,
            successful=snapshot.counters.successful,
            failed=snapshot.counters.failed,
        ),
        has_next=snapshot.has_next,
        created_at=snapshot.created_at,
        updated_at=snapshot.updated_at,
        last_chunk=_chunk_response(snapshot.last_chunk),
        validation_errors=[
            RowValidationErrorResponse(
                row_number=error.row_number,
                column=error.column,
                message=error.message,
                value=error.value,
            )
            for error in snapshot.validation_errors
        ],
        notifications=[
            NotificationResponse(level=notification.level, message=notification.message)
            for notification in snapshot.notifications
        ],
    )


def _job_not_found(exc: ImportJobNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.post("/documents/imports", response_model=ImportJobResponse, status_code=status.HTTP_201_CREATED)
def create_import(
    file: UploadFile = Depends(get_csv_upload),
    import_service: DocumentImportService = Depends(get_document_import_service),
) -> ImportJobResponse:
    """
    Parse, validate headers and chunk one catalog CSV. Nothing is written yet.
    """

    try:
        job = import_service.load_file(raw_file=file.file, file_name=file.filename or "upload.csv")
    except MissingColumnsError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(exc), "missing_columns": list(exc.missing_columns)},
        ) from exc
    except CSVHeaderValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    finally:
        file.file.close()

    return _job_response(job.snapshot())


@router.get("/documents/imports/{job_id}", response_model=ImportJobResponse)
def get_import(
    job_id: str,
    import_service: DocumentImportService = Depends(get_document_import_service),
) -> ImportJobResponse:
    try:
        job = import_service.get_job(job_id)
    except ImportJobNotFoundError as exc:
        raise _job_not_found(exc) from exc
    return _job_response(job.snapshot())


@router.post("/documents/imports/{job_id}/next", response_model=ProcessChunkResponse)
def process_next_chunk(
    job_id: str,
    import_service: DocumentImportService = Depends(get_document_import_service),
) -> ProcessChunkResponse:
    """
    Validate and upsert the next chunk. Returns a null chunk once every chunk ran.
    """

    try:
        job = import_service.get_job(job_id)
        result = job.process_next()
    except ImportJobNotFoundError as exc:
        raise _job_not_found(exc) from exc
    except ChunkInFlightError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc

    return ProcessChunkResponse(chunk=_chunk_response(result), job=_job_response(job.snapshot()))


@router.delete("/documents/imports/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
def discard_import(
    job_id: str,
    import_service: DocumentImportService = Depends(get_document_import_service),
) -> Response:
    try:
        import_service.discard_job(job_id)
    except ImportJobNotFoundError as exc:
        raise _job_not_found(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/documents", response_model=CatalogClearedResponse)
def clear_catalog(
    confirm: bool = Query(default=False, description="Must be true; the whole catalog is deleted"),
    import_service: DocumentImportService = Depends(get_document_import_service),
) -> CatalogClearedResponse:
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Clearing the catalog requires confirm=true.",
        )

    try:
        import_service.clear_catalog()
    except CatalogTruncateError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to clear documents",
        ) from exc
    return CatalogClearedResponse()

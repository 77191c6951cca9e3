"""
app/schemas/document_import.py

Response schemas for the design catalog import endpoints.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class RowValidationErrorResponse(BaseModel):
    """
    API response model for one rejected CSV row.
    """

    row_number: int = Field(..., ge=1)
    message: str
    column: str | None = None
    value: str | None = None


class NotificationResponse(BaseModel):
    level: str
    message: str


class ImportCountersResponse(BaseModel):
    processed: int = Field(..., ge=0)
    successful: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)


class ChunkResultResponse(BaseModel):
    """
    API response model for one processed chunk.
    """

    chunk_index: int = Field(..., ge=0)
    rows: int = Field(..., ge=0)
    successful: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    rejected_rows: int = Field(..., ge=0)
    persisted: bool
    error: str | None = None


class ImportJobResponse(BaseModel):
    """
    API response model for an import job snapshot.
    """

    job_id: str
    file_name: str
    status: str
    total_rows: int = Field(..., ge=0)
    total_chunks: int = Field(..., ge=0)
    chunk_size: int = Field(..., ge=1)
    current_chunk: int = Field(..., ge=0)
    progress: int = Field(..., ge=0, le=100)
    counters: ImportCountersResponse
    has_next: bool
    created_at: datetime
    updated_at: datetime
    last_chunk: ChunkResultResponse | None = None
    validation_errors: list[RowValidationErrorResponse] = Field(default_factory=list)
    notifications: list[NotificationResponse] = Field(default_factory=list)


class ProcessChunkResponse(BaseModel):
    """
    Result of one "process next chunk" call; ``chunk`` is null once the job is complete.
    """

    chunk: ChunkResultResponse | None = None
    job: ImportJobResponse


class CatalogClearedResponse(BaseModel):
    cleared: bool = True
    message: str = "All documents have been cleared"

"""
app/domain/document_import.py

Domain models used by the chunked design catalog import.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Mapping

REQUIRED_COLUMNS: tuple[str, ...] = (
    "id",
    "category_id",
    "subcategory_id",
    "design_no",
    "description",
    "extension",
    "file_type",
    "total_area",
    "duration_min",
    "total_switches",
    "colours",
    "width",
    "height",
    "stabilizer_required",
    "design_options",
    "design_information",
    "confidential",
    "transfer",
)

CONFLICT_KEY = "design_no"


class ImportJobStatus:
    LOADED = "loaded"
    PROCESSING = "processing"
    COMPLETE = "complete"


class NotificationLevel:
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class ImportRow:
    """
    One parsed CSV record keyed by trimmed header name.
    """

    row_number: int
    values: Mapping[str, str | None]

    def get(self, column: str) -> str | None:
        return self.values.get(column)


@dataclass(frozen=True)
class CleanedDocument:
    """
    Typed catalog record prepared for upsert.
    """

    id: int
    category_id: int
    subcategory_id: int
    design_no: str
    description: str
    extension: str
    file_type: str
    total_area: float
    duration_min: float
    total_switches: int
    colours: int
    width: float
    height: float
    stabilizer_required: str
    design_options: str
    design_information: str
    confidential: str
    transfer: str

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RowValidationError:
    """
    One CSV row validation error detail.
    """

    row_number: int
    message: str
    column: str | None = None
    value: str | None = None


@dataclass(frozen=True)
class DocumentValidationResult:
    """
    Outcome of validating one row: a cleaned document or the reasons it was rejected.
    """

    row_number: int
    document: CleanedDocument | None = None
    errors: tuple[RowValidationError, ...] = ()

    @property
    def is_valid(self) -> bool:
        return self.document is not None and not self.errors


@dataclass(frozen=True)
class Notification:
    """
    Transient user-facing message, the server-side equivalent of a toast.
    """

    level: str
    message: str


@dataclass(frozen=True)
class ChunkResult:
    """
    Accounting for one processed chunk.
    """

    chunk_index: int
    rows: int
    successful: int
    failed: int
    rejected_rows: int
    persisted: bool
    error: str | None = None


@dataclass(frozen=True)
class ImportCounters:
    processed: int = 0
    successful: int = 0
    failed: int = 0


@dataclass(frozen=True)
class ImportJobSnapshot:
    """
    Point-in-time view of an import job, safe to hand to the API layer.
    """

    job_id: str
    file_name: str
    status: str
    total_rows: int
    total_chunks: int
    chunk_size: int
    current_chunk: int
    progress: int
    counters: ImportCounters
    has_next: bool
    created_at: datetime
    updated_at: datetime
    last_chunk: ChunkResult | None = None
    validation_errors: list[RowValidationError] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)

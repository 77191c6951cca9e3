"""
app/services/document_import_service.py

Chunked, manually advanced CSV import of the design catalog.

A file selection is parsed once: the header is checked against the required
column set before any row is read, rows are split into fixed-size chunks, and
a DocumentImportJob is registered. Each "process next" call then validates,
cleans and upserts exactly one chunk. Chunks never run concurrently within a
job; a second trigger while one is in flight is refused, not queued.

Counting rules per chunk:
  - processed  += rows in the chunk
  - successful += cleaned documents, only when the upsert succeeded
  - failed     += rejected rows on success, or every row of the chunk when
                  the upsert failed or no row survived validation
so that processed == successful + failed at all times.
"""

from __future__ import annotations

import csv
import io
import logging
import math
import threading
import uuid
from collections import deque
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import BinaryIO, Protocol

from app.config import get_document_import_settings
from app.domain.document_import import (
    REQUIRED_COLUMNS,
    ChunkResult,
    CleanedDocument,
    ImportCounters,
    ImportJobSnapshot,
    ImportJobStatus,
    ImportRow,
    Notification,
    NotificationLevel,
    RowValidationError,
)
from app.repositories.errors import CatalogTruncateError, DocumentPersistenceError
from app.validators.document_row_validator import DocumentRowValidator

logger = logging.getLogger(__name__)

_MAX_NOTIFICATIONS = 50


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class CSVHeaderValidationError(ValueError):
    """
    Raised when the CSV file cannot be accepted for import at all.
    """


class MissingColumnsError(CSVHeaderValidationError):
    """
    Raised when required columns are absent from the header row.
    """

    def __init__(self, missing_columns: Sequence[str]) -> None:
        self.missing_columns = tuple(missing_columns)
        super().__init__(f"Missing columns: {', '.join(self.missing_columns)}")


class CSVFormatError(CSVHeaderValidationError):
    """
    Raised when the CSV body is malformed or not UTF-8.
    """


class ChunkInFlightError(RuntimeError):
    """
    Raised when a chunk is requested while another one of the same job runs.
    """


class ImportJobNotFoundError(LookupError):
    """
    Raised for unknown or evicted job ids.
    """


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class DocumentStore(Protocol):
    """
    Persistent catalog the import writes into.
    """

    def upsert_documents(
        self,
        documents: Sequence[CleanedDocument],
        *,
        batch_size: int = ...,
    ) -> int:
        ...

    def truncate(self) -> None:
        ...


# ---------------------------------------------------------------------------
# Parsing and chunking
# ---------------------------------------------------------------------------


def find_missing_columns(headers: Sequence[str]) -> list[str]:
    """
    Return required columns absent from ``headers`` (case-sensitive, any order).
    """

    present = set(headers)
    return [column for column in REQUIRED_COLUMNS if column not in present]


def parse_import_file(raw_file: BinaryIO) -> list[ImportRow]:
    """
    Check the header row, then parse every non-empty record.

    Raises MissingColumnsError before any data row is read when the header is
    incomplete, and CSVFormatError for undecodable or malformed content.
    """

    raw_file.seek(0)
    text_stream: io.TextIOWrapper | None = None
    rows: list[ImportRow] = []
    try:
        text_stream = io.TextIOWrapper(raw_file, encoding="utf-8-sig", newline="")
        header_reader = csv.reader(text_stream, strict=True)
        header_row = next(header_reader, None)
        if not header_row or all(not cell.strip() for cell in header_row):
            raise CSVHeaderValidationError("CSV header row is missing.")

        headers = [cell.strip() for cell in header_row]
        missing = find_missing_columns(headers)
        if missing:
            raise MissingColumnsError(missing)

        header_lines = header_reader.line_num
        reader = csv.DictReader(text_stream, fieldnames=headers, strict=True)
        for values in reader:
            values.pop(None, None)
            if all(value is None or not str(value).strip() for value in values.values()):
                continue
            rows.append(ImportRow(row_number=header_lines + reader.line_num, values=values))
    except UnicodeDecodeError as exc:
        raise CSVFormatError("CSV must be UTF-8 encoded.") from exc
    except csv.Error as exc:
        raise CSVFormatError(f"Invalid CSV format: {exc}") from exc
    finally:
        if text_stream is not None:
            try:
                text_stream.detach()
            except ValueError:
                pass

    return rows


def chunk_rows(rows: Sequence[ImportRow], chunk_size: int) -> list[list[ImportRow]]:
    """
    Split rows into consecutive slices of at most ``chunk_size``.
    """

    size = max(1, chunk_size)
    return [list(rows[start : start + size]) for start in range(0, len(rows), size)]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Job
# ---------------------------------------------------------------------------


class DocumentImportJob:
    """
    Resumable import of one selected file, advanced one chunk per call.
    """

    def __init__(
        self,
        *,
        file_name: str,
        rows: Sequence[ImportRow],
        store: DocumentStore,
        chunk_size: int = 2000,
        upsert_batch_size: int = 500,
        max_validation_errors: int = 500,
        log_validation_errors: bool = True,
        validator: DocumentRowValidator | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.job_id = uuid.uuid4().hex
        self.file_name = file_name
        self.chunk_size = max(1, chunk_size)
        self.total_rows = len(rows)
        self._chunks = chunk_rows(rows, self.chunk_size)
        self._store = store
        self._upsert_batch_size = max(1, upsert_batch_size)
        self._max_validation_errors = max(1, max_validation_errors)
        self._log_validation_errors = log_validation_errors
        self._validator = validator or DocumentRowValidator()
        self._clock = clock

        self._cursor = 0
        self._processed = 0
        self._successful = 0
        self._failed = 0
        self._last_chunk: ChunkResult | None = None
        self._validation_errors: list[RowValidationError] = []
        self._notifications: deque[Notification] = deque(maxlen=_MAX_NOTIFICATIONS)
        self._in_flight = threading.Lock()
        self._state_lock = threading.Lock()

        self.created_at = clock()
        self.updated_at = self.created_at
        self.status = ImportJobStatus.LOADED if self._chunks else ImportJobStatus.COMPLETE

        self._notify(
            NotificationLevel.SUCCESS,
            f"File loaded: {self.total_rows} rows split into {len(self._chunks)} chunks",
        )

    # -- read side -----------------------------------------------------------

    @property
    def chunks(self) -> list[list[ImportRow]]:
        return self._chunks

    @property
    def total_chunks(self) -> int:
        return len(self._chunks)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def counters(self) -> ImportCounters:
        return ImportCounters(
            processed=self._processed,
            successful=self._successful,
            failed=self._failed,
        )

    @property
    def progress(self) -> int:
        if not self._chunks:
            return 100
        return min(100, _round_half_up(self._cursor / len(self._chunks) * 100))

    @property
    def is_in_flight(self) -> bool:
        return self._in_flight.locked()

    def has_next(self) -> bool:
        return self._cursor < len(self._chunks)

    def snapshot(self) -> ImportJobSnapshot:
        with self._state_lock:
            return ImportJobSnapshot(
                job_id=self.job_id,
                file_name=self.file_name,
                status=self.status,
                total_rows=self.total_rows,
                total_chunks=len(self._chunks),
                chunk_size=self.chunk_size,
                current_chunk=self._cursor,
                progress=self.progress,
                counters=self.counters,
                has_next=self.has_next(),
                created_at=self.created_at,
                updated_at=self.updated_at,
                last_chunk=self._last_chunk,
                validation_errors=list(self._validation_errors),
                notifications=list(self._notifications),
            )

    # -- write side ----------------------------------------------------------

    def process_next(self) -> ChunkResult | None:
        """
        Validate, clean and upsert the chunk under the cursor, then advance.

        Returns None when every chunk has already been processed.
        """

        if not self._in_flight.acquire(blocking=False):
            raise ChunkInFlightError(f"Chunk {self._cursor + 1} of job {self.job_id} is still running.")
        try:
            if not self.has_next():
                return None

            index = self._cursor
            with self._state_lock:
                previous_status = self.status
                self.status = ImportJobStatus.PROCESSING
            try:
                result = self._run_chunk(index, self._chunks[index])
            except Exception:
                with self._state_lock:
                    self.status = previous_status
                logger.exception("Document import chunk crashed job=%s chunk=%s", self.job_id, index + 1)
                raise

            with self._state_lock:
                self._processed += result.rows
                self._successful += result.successful
                self._failed += result.failed
                self._cursor += 1
                self._last_chunk = result
                self.updated_at = self._clock()
                if not self.has_next():
                    self.status = ImportJobStatus.COMPLETE

            if self.status == ImportJobStatus.COMPLETE:
                logger.info(
                    "Document import complete job=%s processed=%s successful=%s failed=%s",
                    self.job_id,
                    self._processed,
                    self._successful,
                    self._failed,
                )
                if self._failed:
                    self._notify(
                        NotificationLevel.ERROR,
                        f"Import finished: {self._failed} of {self._processed} rows failed",
                    )
                else:
                    self._notify(NotificationLevel.SUCCESS, "All chunks processed successfully!")
            return result
        finally:
            self._in_flight.release()

    def _run_chunk(self, index: int, chunk: list[ImportRow]) -> ChunkResult:
        documents, rejected = self._validator.validate_rows(chunk)
        for rejection in rejected:
            for error in rejection.errors:
                self._record_error(error)
        if rejected and self._log_validation_errors:
            logger.warning(
                "Document import chunk=%s job=%s rejected_rows=%s",
                index + 1,
                self.job_id,
                len(rejected),
            )

        if not documents:
            self._notify(
                NotificationLevel.ERROR,
                f"Chunk {index + 1} contained no valid rows",
            )
            return ChunkResult(
                chunk_index=index,
                rows=len(chunk),
                successful=0,
                failed=len(chunk),
                rejected_rows=len(rejected),
                persisted=False,
                error="No valid rows in chunk.",
            )

        try:
            self._store.upsert_documents(documents, batch_size=self._upsert_batch_size)
        except DocumentPersistenceError as exc:
            logger.error(
                "Document import chunk upsert failed chunk=%s job=%s rows=%s error=%s",
                index + 1,
                self.job_id,
                len(chunk),
                exc.__cause__ or exc,
            )
            self._notify(NotificationLevel.ERROR, f"Failed to import chunk {index + 1}")
            return ChunkResult(
                chunk_index=index,
                rows=len(chunk),
                successful=0,
                failed=len(chunk),
                rejected_rows=len(rejected),
                persisted=False,
                error=str(exc),
            )

        logger.info(
            "Document import chunk upserted chunk=%s/%s job=%s documents=%s rejected=%s",
            index + 1,
            len(self._chunks),
            self.job_id,
            len(documents),
            len(rejected),
        )
        self._notify(NotificationLevel.SUCCESS, f"Chunk {index + 1} imported successfully")
        return ChunkResult(
            chunk_index=index,
            rows=len(chunk),
            successful=len(documents),
            failed=len(rejected),
            rejected_rows=len(rejected),
            persisted=True,
        )

    def _record_error(self, error: RowValidationError) -> None:
        if self._log_validation_errors:
            logger.warning(
                "Document import validation error row=%s column=%s message=%s value=%r",
                error.row_number,
                error.column,
                error.message,
                error.value,
            )
        with self._state_lock:
            if len(self._validation_errors) < self._max_validation_errors:
                self._validation_errors.append(error)

    def _notify(self, level: str, message: str) -> None:
        self._notifications.append(Notification(level=level, message=message))


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class DocumentImportService:
    """
    Owns the in-process registry of import jobs and the catalog store.
    """

    def __init__(
        self,
        *,
        store: DocumentStore,
        chunk_size: int = 2000,
        upsert_batch_size: int = 500,
        max_validation_errors: int = 500,
        log_validation_errors: bool = True,
        job_idle_timeout_seconds: int = 3600,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._chunk_size = max(1, chunk_size)
        self._upsert_batch_size = max(1, upsert_batch_size)
        self._max_validation_errors = max(1, max_validation_errors)
        self._log_validation_errors = log_validation_errors
        self._job_idle_timeout = timedelta(seconds=max(1, job_idle_timeout_seconds))
        self._clock = clock
        self._jobs: dict[str, DocumentImportJob] = {}
        self._lock = threading.Lock()

    def load_file(self, *, raw_file: BinaryIO, file_name: str) -> DocumentImportJob:
        """
        Parse and chunk a CSV file into a new registered job.
        """

        try:
            rows = parse_import_file(raw_file)
        except CSVHeaderValidationError as exc:
            logger.warning("Document import rejected file=%r reason=%s", file_name, exc)
            raise

        job = DocumentImportJob(
            file_name=file_name,
            rows=rows,
            store=self._store,
            chunk_size=self._chunk_size,
            upsert_batch_size=self._upsert_batch_size,
            max_validation_errors=self._max_validation_errors,
            log_validation_errors=self._log_validation_errors,
            clock=self._clock,
        )
        with self._lock:
            self._jobs[job.job_id] = job
        logger.info(
            "Document import loaded job=%s file=%r rows=%s chunks=%s",
            job.job_id,
            file_name,
            job.total_rows,
            job.total_chunks,
        )
        return job

    def get_job(self, job_id: str) -> DocumentImportJob:
        with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            raise ImportJobNotFoundError(f"Import job {job_id!r} not found.")
        return job

    def process_next_chunk(self, job_id: str) -> ChunkResult | None:
        return self.get_job(job_id).process_next()

    def discard_job(self, job_id: str) -> None:
        with self._lock:
            job = self._jobs.pop(job_id, None)
        if job is None:
            raise ImportJobNotFoundError(f"Import job {job_id!r} not found.")
        logger.info("Document import discarded job=%s cursor=%s", job_id, job.cursor)

    def evict_idle_jobs(self) -> int:
        """
        Drop jobs untouched for longer than the idle timeout; in-flight jobs stay.
        """

        cutoff = self._clock() - self._job_idle_timeout
        with self._lock:
            stale = [
                job_id
                for job_id, job in self._jobs.items()
                if job.updated_at < cutoff and not job.is_in_flight
            ]
            for job_id in stale:
                del self._jobs[job_id]
        if stale:
            logger.info("Document import evicted idle jobs count=%s", len(stale))
        return len(stale)

    def job_count(self) -> int:
        with self._lock:
            return len(self._jobs)

    def clear_catalog(self) -> None:
        """
        Truncate the catalog table. Callers must have confirmed the action.
        """

        try:
            self._store.truncate()
        except CatalogTruncateError:
            logger.exception("Clearing documents table failed")
            raise
        logger.info("Documents table cleared")


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_document_import_service() -> DocumentImportService:
    """
    Build and cache the import service with env-driven settings.
    """

    from app.repositories.document_repository import DocumentRepository

    settings = get_document_import_settings()
    return DocumentImportService(
        store=DocumentRepository(),
        chunk_size=settings.chunk_size,
        upsert_batch_size=settings.upsert_batch_size,
        max_validation_errors=settings.max_validation_errors,
        log_validation_errors=settings.log_validation_errors,
        job_idle_timeout_seconds=settings.job_idle_timeout_seconds,
    )

"""
Import a design catalog CSV from the command line, one chunk at a time.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from app.services.document_import_service import (
    CSVHeaderValidationError,
    DocumentImportService,
    get_document_import_service,
)


def run_import(service: DocumentImportService, path: str) -> dict[str, object]:
    with open(path, "rb") as raw_file:
        job = service.load_file(raw_file=raw_file, file_name=path)

    while job.has_next():
        result = job.process_next()
        if result is None:
            break
        logging.getLogger(__name__).info(
            "Chunk %s/%s successful=%s failed=%s progress=%s%%",
            result.chunk_index + 1,
            job.total_chunks,
            result.successful,
            result.failed,
            job.progress,
        )

    snapshot = job.snapshot()
    return {
        "job_id": snapshot.job_id,
        "file_name": snapshot.file_name,
        "status": snapshot.status,
        "total_rows": snapshot.total_rows,
        "total_chunks": snapshot.total_chunks,
        "processed": snapshot.counters.processed,
        "successful": snapshot.counters.successful,
        "failed": snapshot.counters.failed,
        "validation_errors": [
            {"row_number": error.row_number, "column": error.column, "message": error.message}
            for error in snapshot.validation_errors
        ],
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Import a design catalog CSV into the documents table.")
    parser.add_argument("path", help="Path to the CSV file.")
    parser.add_argument(
        "--clear-first",
        action="store_true",
        help="Truncate the documents table before importing.",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    service = get_document_import_service()
    if args.clear_first:
        service.clear_catalog()

    try:
        payload = run_import(service, args.path)
    except CSVHeaderValidationError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    print(json.dumps(payload, indent=2))
    return 0 if payload["failed"] == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())

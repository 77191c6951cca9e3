"""
app/scheduler/jobs.py

APScheduler housekeeping for process-local state.

Import jobs and preview surfaces live in memory between requests. Abandoned
ones are evicted on a fixed interval so their rows, decoded images, temporary
files and document handles are released.

Schedule
--------
  evict_import_jobs       every SCHEDULER_EVICTION_INTERVAL_SECONDS
  evict_preview_sessions  every SCHEDULER_EVICTION_INTERVAL_SECONDS

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import SchedulerSettings, get_scheduler_settings
from app.services.document_import_service import DocumentImportService, get_document_import_service
from app.services.preview_session_service import PreviewSessionService, get_preview_session_service

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Job: idle import jobs
# ---------------------------------------------------------------------------


def run_import_job_eviction(service: DocumentImportService | None = None) -> int:
    """
    Drop import jobs nobody advanced within the idle timeout.
    """
    import_service = service or get_document_import_service()
    try:
        evicted = import_service.evict_idle_jobs()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduler: evict_import_jobs failed: %s", exc)
        return 0
    logger.debug("Scheduler: evict_import_jobs evicted=%s remaining=%s", evicted, import_service.job_count())
    return evicted


# ---------------------------------------------------------------------------
# Job: idle preview sessions
# ---------------------------------------------------------------------------


def run_preview_session_eviction(service: PreviewSessionService | None = None) -> int:
    """
    Dispose preview surfaces untouched within the idle timeout.
    Sessions busy with a request are skipped until the next run.
    """
    preview_service = service or get_preview_session_service()
    try:
        evicted = preview_service.evict_idle_sessions()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduler: evict_preview_sessions failed: %s", exc)
        return 0
    logger.debug(
        "Scheduler: evict_preview_sessions evicted=%s remaining=%s",
        evicted,
        preview_service.session_count(),
    )
    return evicted


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler(settings: SchedulerSettings | None = None) -> BackgroundScheduler:
    """
    Build and register all housekeeping jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    """
    settings = settings or get_scheduler_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_import_job_eviction,
        trigger="interval",
        seconds=settings.eviction_interval_seconds,
        id="evict_import_jobs",
        name="Evict idle import jobs",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    scheduler.add_job(
        run_preview_session_eviction,
        trigger="interval",
        seconds=settings.eviction_interval_seconds,
        id="evict_preview_sessions",
        name="Dispose idle preview sessions",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )

    return scheduler

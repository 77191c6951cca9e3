from __future__ import annotations

from datetime import timedelta

from app.config import SchedulerSettings
from app.scheduler.jobs import build_scheduler, run_import_job_eviction, run_preview_session_eviction


class _EvictingService:
    def __init__(self, evicted: int = 0, *, error: Exception | None = None) -> None:
        self._evicted = evicted
        self._error = error

    def _evict(self) -> int:
        if self._error is not None:
            raise self._error
        return self._evicted

    evict_idle_jobs = _evict
    evict_idle_sessions = _evict

    def job_count(self) -> int:
        return 0

    def session_count(self) -> int:
        return 0


def test_build_scheduler_registers_housekeeping_jobs() -> None:
    scheduler = build_scheduler(SchedulerSettings(eviction_interval_seconds=45))

    jobs = {job.id: job for job in scheduler.get_jobs()}

    assert set(jobs) == {"evict_import_jobs", "evict_preview_sessions"}
    for job in jobs.values():
        assert job.trigger.interval == timedelta(seconds=45)
        assert job.coalesce is True
        assert job.max_instances == 1
    assert not scheduler.running


def test_eviction_jobs_report_counts() -> None:
    assert run_import_job_eviction(_EvictingService(2)) == 2  # type: ignore[arg-type]
    assert run_preview_session_eviction(_EvictingService(3)) == 3  # type: ignore[arg-type]


def test_eviction_failures_are_contained(caplog) -> None:  # noqa: ANN001
    failing = _EvictingService(error=RuntimeError("lock poisoned"))

    with caplog.at_level("WARNING", logger="app.scheduler.jobs"):
        assert run_import_job_eviction(failing) == 0  # type: ignore[arg-type]
        assert run_preview_session_eviction(failing) == 0  # type: ignore[arg-type]

    assert "lock poisoned" in caplog.text

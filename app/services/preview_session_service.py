"""
app/services/preview_session_service.py

In-process registry of preview surfaces.

Each session owns one DesignCanvas and a lock; request handlers run in a
thread pool, so every canvas call happens inside ``session.use()``. Idle
sessions are disposed by the housekeeping scheduler.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from functools import lru_cache

from app.config import CanvasSettings, get_asset_storage_settings, get_canvas_settings, get_external_http_settings
from compositor.documents import DocumentDecoder
from compositor.media import CameraProvider, FrameScheduler
from compositor.objects import AssetResolver, ViewMode
from compositor.surface import DesignCanvas, SurfaceOptions

logger = logging.getLogger(__name__)


class PreviewSessionNotFoundError(LookupError):
    """
    Raised for unknown, disposed or evicted preview sessions.
    """


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def surface_options_from_settings(settings: CanvasSettings) -> SurfaceOptions:
    return SurfaceOptions(
        background_color=settings.default_background_color,
        preview_box_size=settings.preview_box_size,
        min_object_size=settings.min_object_size,
        max_background_image_bytes=settings.max_background_image_bytes,
        webcam_width=settings.webcam_width,
        webcam_height=settings.webcam_height,
        worksheet_render_scale=settings.worksheet_render_scale,
    )


class PreviewSession:
    def __init__(self, canvas: DesignCanvas, *, clock: Callable[[], datetime]) -> None:
        self.canvas = canvas
        self._clock = clock
        self._lock = threading.Lock()
        self.created_at = clock()
        self.last_used_at = self.created_at

    @property
    def session_id(self) -> str:
        return self.canvas.surface_id

    @contextmanager
    def use(self) -> Iterator[DesignCanvas]:
        with self._lock:
            self.last_used_at = self._clock()
            yield self.canvas

    def try_dispose(self) -> bool:
        """
        Dispose unless a request currently holds the session.
        """

        if not self._lock.acquire(blocking=False):
            return False
        try:
            self.canvas.dispose()
        finally:
            self._lock.release()
        return True


class PreviewSessionService:
    def __init__(
        self,
        *,
        asset_resolver: AssetResolver,
        options: SurfaceOptions | None = None,
        camera_provider: CameraProvider | None = None,
        frame_scheduler_factory: Callable[[], FrameScheduler] | None = None,
        document_decoder: DocumentDecoder | None = None,
        max_surface_size: int = 4096,
        session_idle_timeout_seconds: int = 1800,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._asset_resolver = asset_resolver
        self._options = options or SurfaceOptions()
        self._camera_provider = camera_provider
        self._frame_scheduler_factory = frame_scheduler_factory
        self._document_decoder = document_decoder
        self._max_surface_size = max(1, max_surface_size)
        self._idle_timeout = timedelta(seconds=max(1, session_idle_timeout_seconds))
        self._clock = clock
        self._sessions: dict[str, PreviewSession] = {}
        self._lock = threading.Lock()

    def create_session(
        self,
        *,
        width: int,
        height: int,
        view_mode: str = ViewMode.DESIGN,
        background_color: str | None = None,
    ) -> PreviewSession:
        if not 0 < width <= self._max_surface_size or not 0 < height <= self._max_surface_size:
            raise ValueError(
                f"Surface size must be within 1..{self._max_surface_size} on both axes, got {width}x{height}."
            )

        options = self._options
        if background_color:
            options = replace(options, background_color=background_color)

        canvas = DesignCanvas(
            width=width,
            height=height,
            asset_resolver=self._asset_resolver,
            camera_provider=self._camera_provider,
            frame_scheduler=self._frame_scheduler_factory() if self._frame_scheduler_factory else None,
            document_decoder=self._document_decoder,
            options=options,
            view_mode=view_mode,
        )
        session = PreviewSession(canvas, clock=self._clock)
        with self._lock:
            self._sessions[session.session_id] = session
        logger.info(
            "Preview session created session=%s size=%sx%s view_mode=%s",
            session.session_id,
            width,
            height,
            view_mode,
        )
        return session

    def get_session(self, session_id: str) -> PreviewSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise PreviewSessionNotFoundError(f"Preview session {session_id!r} not found.")
        return session

    def dispose_session(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise PreviewSessionNotFoundError(f"Preview session {session_id!r} not found.")
        with session.use() as canvas:
            canvas.dispose()
        logger.info("Preview session disposed session=%s", session_id)

    def evict_idle_sessions(self) -> int:
        cutoff = self._clock() - self._idle_timeout
        with self._lock:
            candidates = [
                (session_id, session)
                for session_id, session in self._sessions.items()
                if session.last_used_at < cutoff
            ]

        evicted = 0
        for session_id, session in candidates:
            if not session.try_dispose():
                continue
            with self._lock:
                self._sessions.pop(session_id, None)
            evicted += 1
        if evicted:
            logger.info("Preview sessions evicted count=%s", evicted)
        return evicted

    def dispose_all(self) -> int:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            with session.use() as canvas:
                canvas.dispose()
        return len(sessions)

    def session_count(self) -> int:
        with self._lock:
            return len(self._sessions)


@lru_cache(maxsize=1)
def get_preview_session_service() -> PreviewSessionService:
    """
    Build and cache the preview registry backed by object storage.
    """

    from app.repositories.document_repository import DocumentRepository
    from app.services.asset_resolution_service import S3AssetResolver

    settings = get_canvas_settings()
    resolver = S3AssetResolver(
        path_lookup=DocumentRepository(),
        storage_settings=get_asset_storage_settings(),
        http_settings=get_external_http_settings(),
    )
    return PreviewSessionService(
        asset_resolver=resolver,
        options=surface_options_from_settings(settings),
        max_surface_size=settings.max_surface_size,
        session_idle_timeout_seconds=settings.session_idle_timeout_seconds,
    )

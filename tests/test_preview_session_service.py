from __future__ import annotations

import io
import threading
from datetime import datetime, timedelta, timezone

import pytest
from PIL import Image

from app.config import CanvasSettings
from app.services.preview_session_service import (
    PreviewSessionNotFoundError,
    PreviewSessionService,
    surface_options_from_settings,
)
from compositor.errors import AssetResolutionError, InvalidColorError, SurfaceDisposedError
from compositor.media import ManualFrameScheduler
from compositor.objects import ViewMode
from compositor.resources import TemporaryAsset


class TinyResolver:
    def fetch_design_image(self, design_no: str) -> TemporaryAsset:
        buffer = io.BytesIO()
        Image.new("RGB", (40, 20), "purple").save(buffer, format="PNG")
        return TemporaryAsset.from_bytes(buffer.getvalue(), name=f"{design_no}.PNG", suffix=".PNG")

    def fetch_worksheet(self, design_no: str) -> TemporaryAsset:
        raise AssetResolutionError("Worksheet not found")


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def service(clock: FakeClock) -> PreviewSessionService:
    return PreviewSessionService(
        asset_resolver=TinyResolver(),
        frame_scheduler_factory=ManualFrameScheduler,
        max_surface_size=1000,
        session_idle_timeout_seconds=60,
        clock=clock,
    )


def test_options_follow_canvas_settings() -> None:
    options = surface_options_from_settings(
        CanvasSettings(default_background_color="#000000", preview_box_size=300.0)
    )

    assert options.background_color == "#000000"
    assert options.preview_box_size == 300.0


def test_create_and_lookup(service: PreviewSessionService) -> None:
    session = service.create_session(width=400, height=300, background_color="#ff0000")

    assert service.get_session(session.session_id) is session
    assert service.session_count() == 1
    with session.use() as canvas:
        assert canvas.background_color == "#ff0000"
        assert canvas.view_mode == ViewMode.DESIGN
        assert canvas.load_design("AB1001") is True


@pytest.mark.parametrize("width, height", [(0, 100), (100, -1), (1001, 100), (100, 1001)])
def test_surface_size_is_bounded(service: PreviewSessionService, width: int, height: int) -> None:
    with pytest.raises(ValueError):
        service.create_session(width=width, height=height)
    assert service.session_count() == 0


def test_invalid_color_is_rejected(service: PreviewSessionService) -> None:
    with pytest.raises(InvalidColorError):
        service.create_session(width=100, height=100, background_color="blurple")


def test_unknown_session(service: PreviewSessionService) -> None:
    with pytest.raises(PreviewSessionNotFoundError):
        service.get_session("missing")
    with pytest.raises(PreviewSessionNotFoundError):
        service.dispose_session("missing")


def test_dispose_session_disposes_canvas(service: PreviewSessionService) -> None:
    session = service.create_session(width=100, height=100)

    service.dispose_session(session.session_id)

    assert session.canvas.disposed
    with pytest.raises(PreviewSessionNotFoundError):
        service.get_session(session.session_id)
    with pytest.raises(SurfaceDisposedError):
        session.canvas.render()


def test_idle_sessions_are_evicted(service: PreviewSessionService, clock: FakeClock) -> None:
    stale = service.create_session(width=100, height=100)
    clock.advance(45)
    fresh = service.create_session(width=100, height=100)
    clock.advance(30)

    assert service.evict_idle_sessions() == 1

    assert stale.canvas.disposed
    assert service.get_session(fresh.session_id) is fresh


def test_session_in_use_is_not_evicted(service: PreviewSessionService, clock: FakeClock) -> None:
    session = service.create_session(width=100, height=100)
    clock.advance(120)
    entered = threading.Event()
    release = threading.Event()

    def hold() -> None:
        with session.use():
            entered.set()
            release.wait(timeout=5)

    worker = threading.Thread(target=hold)
    worker.start()
    entered.wait(timeout=5)
    session.last_used_at = clock.now - timedelta(seconds=120)
    try:
        assert service.evict_idle_sessions() == 0
    finally:
        release.set()
        worker.join(timeout=5)

    assert service.session_count() == 1
    assert not session.canvas.disposed


def test_dispose_all(service: PreviewSessionService) -> None:
    sessions = [service.create_session(width=50, height=50) for _ in range(3)]

    assert service.dispose_all() == 3

    assert service.session_count() == 0
    assert all(session.canvas.disposed for session in sessions)


def test_dispose_all_waits_for_a_running_request(service: PreviewSessionService) -> None:
    session = service.create_session(width=50, height=50)
    entered = threading.Event()
    release = threading.Event()
    disposed_while_held: list[bool] = []

    def hold() -> None:
        with session.use() as canvas:
            entered.set()
            release.wait(timeout=5)
            disposed_while_held.append(canvas.disposed)

    holder = threading.Thread(target=hold)
    holder.start()
    assert entered.wait(timeout=5)
    shutdown = threading.Thread(target=service.dispose_all)
    shutdown.start()
    shutdown.join(timeout=0.2)
    try:
        assert shutdown.is_alive()
    finally:
        release.set()
        holder.join(timeout=5)
        shutdown.join(timeout=5)

    assert disposed_while_held == [False]
    assert session.canvas.disposed

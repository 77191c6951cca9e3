"""
compositor/media.py

Camera and frame scheduling collaborators of the preview surface.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable, Sequence
from typing import Protocol

from PIL import Image


class MediaTrack(Protocol):
    kind: str

    @property
    def ready_state(self) -> str:
        """``"live"`` while capturing, ``"ended"`` once stopped."""
        ...

    def stop(self) -> None:
        ...


class MediaStream(Protocol):
    def get_tracks(self) -> Sequence[MediaTrack]:
        ...

    def read_frame(self) -> Image.Image | None:
        """
        Latest video frame, or None before the first frame arrives.

        Raises CameraAccessError when the device stops delivering.
        """
        ...


class CameraProvider(Protocol):
    def open_stream(self, *, width: int, height: int) -> MediaStream:
        """
        Request a video stream at a preferred resolution.

        Raises CameraAccessError on denied permission or missing device.
        """
        ...


class FrameScheduler(Protocol):
    def request_frame(self, callback: Callable[[], None]) -> int:
        ...

    def cancel_frame(self, handle: int) -> None:
        ...


def stop_stream(stream: MediaStream) -> None:
    """
    Stop every track of ``stream``; each track is attempted even if one fails.
    """

    errors: list[Exception] = []
    for track in stream.get_tracks():
        try:
            track.stop()
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)
    if errors:
        raise RuntimeError(f"{len(errors)} media track(s) failed to stop: {errors[0]}")


class ManualFrameScheduler:
    """
    Tick-driven stand-in for an animation frame loop.

    Callbacks requested during a tick run on the next tick, so a
    self-rescheduling loop advances exactly one frame per ``tick()``.
    """

    def __init__(self) -> None:
        self._pending: dict[int, Callable[[], None]] = {}
        self._ids = itertools.count(1)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def request_frame(self, callback: Callable[[], None]) -> int:
        handle = next(self._ids)
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle: int) -> None:
        self._pending.pop(handle, None)

    def tick(self) -> int:
        due = self._pending
        self._pending = {}
        for callback in due.values():
            callback()
        return len(due)

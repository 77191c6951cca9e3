"""
compositor/resources.py

Scoped acquisition with guaranteed release.

Every resource a surface obtains (camera stream, pending frame callback,
temporary fetched asset, document decoder) is registered in one
ResourceScope. Disposing the surface releases the whole scope; a failing
release is logged and the remaining releases still run.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class ResourceHandle:
    name: str
    release: Callable[[], None] = field(repr=False)
    released: bool = False


class ResourceScope:
    """
    Ordered registry of live resources owned by one surface.
    """

    def __init__(self, owner: str) -> None:
        self._owner = owner
        self._handles: list[ResourceHandle] = []

    def __len__(self) -> int:
        return len(self._handles)

    @property
    def active_names(self) -> list[str]:
        return [handle.name for handle in self._handles]

    def acquire(self, name: str, release: Callable[[], None]) -> ResourceHandle:
        handle = ResourceHandle(name=name, release=release)
        self._handles.append(handle)
        return handle

    def forget(self, handle: ResourceHandle | None) -> None:
        """
        Drop a handle whose resource was consumed elsewhere, without releasing it.
        """

        if handle is None or handle.released:
            return
        handle.released = True
        self._remove(handle)

    def release(self, handle: ResourceHandle | None) -> bool:
        """
        Release one resource now. Returns False when its release callable failed.
        """

        if handle is None or handle.released:
            return True
        handle.released = True
        self._remove(handle)
        return self._run_release(handle)

    def release_all(self) -> list[str]:
        """
        Release everything, newest first. Returns the names whose release failed.
        """

        failures: list[str] = []
        while self._handles:
            handle = self._handles.pop()
            if handle.released:
                continue
            handle.released = True
            if not self._run_release(handle):
                failures.append(handle.name)
        return failures

    def _remove(self, handle: ResourceHandle) -> None:
        try:
            self._handles.remove(handle)
        except ValueError:
            pass

    def _run_release(self, handle: ResourceHandle) -> bool:
        try:
            handle.release()
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Resource release failed owner=%s resource=%s error=%s",
                self._owner,
                handle.name,
                exc,
            )
            return False
        return True


class TemporaryAsset:
    """
    Fetched bytes spooled to a private temporary file until released.
    """

    def __init__(self, path: str, *, name: str, content_type: str | None = None) -> None:
        self.path = path
        self.name = name
        self.content_type = content_type
        self._released = False

    @classmethod
    def from_bytes(
        cls,
        content: bytes,
        *,
        name: str,
        suffix: str = "",
        content_type: str | None = None,
    ) -> "TemporaryAsset":
        fd, path = tempfile.mkstemp(prefix="asset_", suffix=suffix)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(content)
        except OSError:
            if os.path.exists(path):
                os.unlink(path)
            raise
        return cls(path, name=name, content_type=content_type)

    @property
    def released(self) -> bool:
        return self._released

    @property
    def size(self) -> int:
        return os.path.getsize(self.path)

    def read_bytes(self) -> bytes:
        if self._released:
            raise RuntimeError(f"Temporary asset {self.name!r} was already released.")
        with open(self.path, "rb") as handle:
            return handle.read()

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        try:
            os.unlink(self.path)
        except FileNotFoundError:
            pass

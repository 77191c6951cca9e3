"""
compositor/errors.py

Exception hierarchy of the preview surface.

Resource-acquisition errors (asset fetch, image/document decode, camera) are
absorbed by the surface, which reverts to its last good state and records a
notification. Input errors are raised to the caller before any state changes.
"""

from __future__ import annotations


class CanvasError(Exception):
    """Base exception for preview surface failures."""


class SurfaceDisposedError(CanvasError):
    """Raised when an operation targets a surface that was already disposed."""


class NoInteractiveObjectError(CanvasError):
    """Raised when a move/scale gesture has no selectable foreground object."""


class InvalidColorError(CanvasError, ValueError):
    """Raised for color strings Pillow cannot interpret."""


class BackgroundImageRejectedError(CanvasError, ValueError):
    """Raised when a background image upload fails type or size checks."""


class ResourceAcquisitionError(CanvasError):
    """Base class for failures to obtain an external resource."""


class AssetResolutionError(ResourceAcquisitionError):
    """Raised when a design identifier cannot be resolved or fetched."""


class ImageDecodeError(ResourceAcquisitionError):
    """Raised when fetched or uploaded bytes are not a decodable image."""


class DocumentDecodeError(ResourceAcquisitionError):
    """Raised when a worksheet cannot be opened or a page cannot be rendered."""


class CameraAccessError(ResourceAcquisitionError):
    """Raised when a camera stream cannot be opened or stops delivering frames."""

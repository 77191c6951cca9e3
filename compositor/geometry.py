"""
compositor/geometry.py

Aspect-preserving fits and gesture clamping for the preview surface.
No I/O and no side effects.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Placement:
    """
    Where a scaled source lands on the surface; offsets may be negative for cover fits.
    """

    left: float
    top: float
    scale: float
    width: float
    height: float

    @property
    def box(self) -> tuple[int, int]:
        return (round(self.left), round(self.top))

    @property
    def size(self) -> tuple[int, int]:
        return (max(1, round(self.width)), max(1, round(self.height)))


def _require_positive(**sizes: float) -> None:
    for name, value in sizes.items():
        if value <= 0:
            raise ValueError(f"{name} must be positive, got {value!r}.")


def _centered(source_width: float, source_height: float, box_width: float, box_height: float, scale: float) -> Placement:
    width = source_width * scale
    height = source_height * scale
    return Placement(
        left=(box_width - width) / 2,
        top=(box_height - height) / 2,
        scale=scale,
        width=width,
        height=height,
    )


def fit_contain(source_width: float, source_height: float, box_width: float, box_height: float) -> Placement:
    """
    Scale so the whole source is visible inside the box, letterboxed and centered.
    """

    _require_positive(
        source_width=source_width,
        source_height=source_height,
        box_width=box_width,
        box_height=box_height,
    )
    scale = min(box_width / source_width, box_height / source_height)
    return _centered(source_width, source_height, box_width, box_height, scale)


def fit_cover(source_width: float, source_height: float, box_width: float, box_height: float) -> Placement:
    """
    Scale so the source fills the whole box, cropping the overflow evenly.
    """

    _require_positive(
        source_width=source_width,
        source_height=source_height,
        box_width=box_width,
        box_height=box_height,
    )
    scale = max(box_width / source_width, box_height / source_height)
    return _centered(source_width, source_height, box_width, box_height, scale)


def fit_within_square(source_width: float, source_height: float, side: float) -> float:
    """
    Scale factor that makes the longest side of the source equal ``side``.
    """

    _require_positive(source_width=source_width, source_height=source_height, side=side)
    return min(side / source_width, side / source_height)


def clamp_position(
    left: float,
    top: float,
    *,
    object_width: float,
    object_height: float,
    surface_width: float,
    surface_height: float,
) -> tuple[float, float]:
    """
    Keep a dragged object's bounding box inside the surface.

    The upper bound wins over the lower one, so an object larger than the
    surface gets a negative offset instead of being pinned to the top-left.
    """

    max_left = surface_width - object_width
    max_top = surface_height - object_height
    return (
        min(max(left, 0.0), max_left),
        min(max(top, 0.0), max_top),
    )


def clamp_scale(
    scale_x: float,
    scale_y: float,
    *,
    left: float,
    top: float,
    natural_width: float,
    natural_height: float,
    surface_width: float,
    surface_height: float,
    min_size: float,
) -> tuple[float, float]:
    """
    Adjust a resize gesture instead of rejecting it.

    Right and bottom edges may not pass the surface; the rendered size may not
    drop below ``min_size`` on either axis. Offending factors are recomputed
    as target size over natural size.
    """

    _require_positive(natural_width=natural_width, natural_height=natural_height)

    if natural_width * scale_x + left > surface_width:
        scale_x = (surface_width - left) / natural_width
    if natural_height * scale_y + top > surface_height:
        scale_y = (surface_height - top) / natural_height

    if natural_width * scale_x < min_size:
        scale_x = min_size / natural_width
    if natural_height * scale_y < min_size:
        scale_y = min_size / natural_height

    return scale_x, scale_y

"""
compositor/objects.py

Foreground content: a positioned design image or a paginated worksheet view.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, Union

from PIL import Image

from compositor.documents import PaginatedDocument
from compositor.resources import ResourceHandle, TemporaryAsset


class ViewMode:
    DESIGN = "design"
    WORKSHEET = "worksheet"

    ALL = (DESIGN, WORKSHEET)


class AssetResolver(Protocol):
    """
    Turns a design number into fetched bytes on local disk.

    Both methods raise AssetResolutionError for unknown designs and fetch failures.
    """

    def fetch_design_image(self, design_no: str) -> TemporaryAsset:
        ...

    def fetch_worksheet(self, design_no: str) -> TemporaryAsset:
        ...


@dataclass(eq=False)
class ForegroundImage:
    design_no: str
    image: Image.Image = field(repr=False)
    left: float
    top: float
    scale_x: float
    scale_y: float
    selectable: bool = True

    @property
    def natural_width(self) -> int:
        return self.image.width

    @property
    def natural_height(self) -> int:
        return self.image.height

    @property
    def scaled_width(self) -> float:
        return self.image.width * self.scale_x

    @property
    def scaled_height(self) -> float:
        return self.image.height * self.scale_y


@dataclass(eq=False)
class DocumentView:
    design_no: str
    document: PaginatedDocument = field(repr=False)
    handles: tuple[ResourceHandle, ...] = field(default=(), repr=False)
    current_page: int = 1

    @property
    def page_count(self) -> int:
        return self.document.page_count

    def next_page(self) -> bool:
        if self.current_page >= self.page_count:
            return False
        self.current_page += 1
        return True

    def previous_page(self) -> bool:
        if self.current_page <= 1:
            return False
        self.current_page -= 1
        return True


Foreground = Union[ForegroundImage, DocumentView]

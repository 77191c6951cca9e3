"""
compositor/background.py

Background variants. A surface holds exactly one at a time.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from PIL import Image

from compositor.geometry import Placement
from compositor.media import MediaStream
from compositor.resources import ResourceHandle


class BackgroundMode:
    COLOR = "color"
    IMAGE = "image"
    WEBCAM = "webcam"


@dataclass(frozen=True)
class ColorBackground:
    color: str

    mode = BackgroundMode.COLOR


@dataclass(frozen=True, eq=False)
class ImageBackground:
    image: Image.Image
    placement: Placement
    selectable: bool = False

    mode = BackgroundMode.IMAGE


@dataclass(eq=False)
class WebcamBackground:
    stream: MediaStream
    stream_handle: ResourceHandle
    frame_handle: ResourceHandle | None = None

    mode = BackgroundMode.WEBCAM


Background = Union[ColorBackground, ImageBackground, WebcamBackground]

"""
compositor/surface.py

DesignCanvas: one preview surface with a background layer and at most one
foreground object.

Background changes go through ``_transition`` which tears down the old
variant before installing the new one, so exactly one mode is live. Every
acquired resource is registered in the surface's ResourceScope and released
by ``dispose()`` or a view-mode switch. Resource acquisition failures never
escape: the surface records the error, notifies, and stays usable.
"""

from __future__ import annotations

import io
import logging
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Any

from PIL import Image, ImageColor, UnidentifiedImageError

from compositor.background import (
    Background,
    ColorBackground,
    ImageBackground,
    WebcamBackground,
)
from compositor.documents import DocumentDecoder, PlumberDocumentDecoder
from compositor.errors import (
    BackgroundImageRejectedError,
    CameraAccessError,
    DocumentDecodeError,
    ImageDecodeError,
    InvalidColorError,
    NoInteractiveObjectError,
    ResourceAcquisitionError,
    SurfaceDisposedError,
)
from compositor.geometry import (
    clamp_position,
    clamp_scale,
    fit_contain,
    fit_cover,
    fit_within_square,
)
from compositor.media import CameraProvider, FrameScheduler, ManualFrameScheduler, stop_stream
from compositor.objects import AssetResolver, DocumentView, Foreground, ForegroundImage, ViewMode
from compositor.resources import ResourceScope, TemporaryAsset

logger = logging.getLogger(__name__)

NOTIFICATION_HISTORY = 50


@dataclass(frozen=True)
class SurfaceOptions:
    background_color: str = "#f9fafb"
    preview_box_size: float = 250.0
    min_object_size: float = 50.0
    max_background_image_bytes: int = 5 * 1024 * 1024
    webcam_width: int = 1920
    webcam_height: int = 1080
    worksheet_render_scale: float = 1.5


@dataclass(frozen=True)
class SurfaceNotice:
    level: str
    message: str


def decode_image(data: bytes, *, name: str) -> Image.Image:
    try:
        with Image.open(io.BytesIO(data)) as opened:
            opened.load()
            return opened.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ImageDecodeError(f"Could not decode image {name!r}: {exc}") from exc


class DesignCanvas:
    def __init__(
        self,
        *,
        width: int,
        height: int,
        asset_resolver: AssetResolver,
        camera_provider: CameraProvider | None = None,
        frame_scheduler: FrameScheduler | None = None,
        document_decoder: DocumentDecoder | None = None,
        options: SurfaceOptions | None = None,
        view_mode: str = ViewMode.DESIGN,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("Surface dimensions must be positive.")
        if view_mode not in ViewMode.ALL:
            raise ValueError(f"Unknown view mode: {view_mode!r}")

        self.surface_id = uuid.uuid4().hex
        self.width = int(width)
        self.height = int(height)
        self.options = options or SurfaceOptions()
        self._asset_resolver = asset_resolver
        self._camera_provider = camera_provider
        self._frame_scheduler = frame_scheduler or ManualFrameScheduler()
        self._document_decoder = document_decoder or PlumberDocumentDecoder()

        _parse_color(self.options.background_color)
        self._color = self.options.background_color
        self._resources = ResourceScope(owner=f"surface:{self.surface_id}")
        self._notifications: deque[SurfaceNotice] = deque(maxlen=NOTIFICATION_HISTORY)
        self._disposed = False
        self._init_surface(view_mode)

    def _init_surface(self, view_mode: str) -> None:
        self.view_mode = view_mode
        self.error: str | None = None
        self._background: Background = ColorBackground(self._color)
        self._foreground: Foreground | None = None
        self._webcam_frame: Image.Image | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def background(self) -> Background:
        return self._background

    @property
    def background_mode(self) -> str:
        return self._background.mode

    @property
    def background_color(self) -> str:
        return self._color

    @property
    def foreground(self) -> Foreground | None:
        return self._foreground

    @property
    def active_resources(self) -> list[str]:
        return self._resources.active_names

    @property
    def notifications(self) -> list[SurfaceNotice]:
        return list(self._notifications)

    @property
    def current_page(self) -> int:
        if isinstance(self._foreground, DocumentView):
            return self._foreground.current_page
        return 0

    @property
    def page_count(self) -> int:
        if isinstance(self._foreground, DocumentView):
            return self._foreground.page_count
        return 0

    def describe(self) -> dict[str, Any]:
        foreground: dict[str, Any] | None = None
        if isinstance(self._foreground, ForegroundImage):
            foreground = {
                "kind": "image",
                "design_no": self._foreground.design_no,
                "left": self._foreground.left,
                "top": self._foreground.top,
                "scale_x": self._foreground.scale_x,
                "scale_y": self._foreground.scale_y,
                "width": self._foreground.scaled_width,
                "height": self._foreground.scaled_height,
            }
        elif isinstance(self._foreground, DocumentView):
            foreground = {
                "kind": "document",
                "design_no": self._foreground.design_no,
                "current_page": self._foreground.current_page,
                "page_count": self._foreground.page_count,
            }

        return {
            "surface_id": self.surface_id,
            "width": self.width,
            "height": self.height,
            "view_mode": self.view_mode,
            "background_mode": self.background_mode,
            "background_color": self._color,
            "foreground": foreground,
            "error": self.error,
            "active_resources": self.active_resources,
            "notifications": [
                {"level": notice.level, "message": notice.message} for notice in self._notifications
            ],
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def dispose(self) -> list[str]:
        """
        Release every acquired resource. Safe to call more than once.

        Returns the names of resources whose release raised.
        """

        if self._disposed:
            return []
        self._disposed = True
        failures = self._resources.release_all()
        self._close_images()
        self._init_surface(self.view_mode)
        logger.info("Surface disposed surface_id=%s release_failures=%s", self.surface_id, len(failures))
        return failures

    def _switch_view_mode(self, view_mode: str) -> None:
        failures = self._resources.release_all()
        self._close_images()
        self._init_surface(view_mode)
        logger.info(
            "Surface view mode switched surface_id=%s view_mode=%s release_failures=%s",
            self.surface_id,
            view_mode,
            len(failures),
        )

    def _close_images(self) -> None:
        if isinstance(self._background, ImageBackground):
            self._background.image.close()
        if isinstance(self._foreground, ForegroundImage):
            self._foreground.image.close()

    def _ensure_live(self) -> None:
        if self._disposed:
            raise SurfaceDisposedError(f"Surface {self.surface_id} was disposed.")

    # ------------------------------------------------------------------
    # Foreground
    # ------------------------------------------------------------------

    def load_design(self, design_no: str, view_mode: str = ViewMode.DESIGN) -> bool:
        """
        Replace the foreground with the design image or its worksheet.

        Returns False when the asset could not be loaded; the error is kept
        on the surface and the foreground stays empty.
        """

        self._ensure_live()
        design_no = str(design_no).strip()
        if not design_no:
            raise ValueError("design_no must not be blank.")
        if view_mode not in ViewMode.ALL:
            raise ValueError(f"Unknown view mode: {view_mode!r}")

        if view_mode != self.view_mode:
            self._switch_view_mode(view_mode)

        self.error = None
        self._clear_foreground()
        try:
            if view_mode == ViewMode.DESIGN:
                self._foreground = self._load_design_image(design_no)
            else:
                self._foreground = self._load_worksheet(design_no)
        except ResourceAcquisitionError as exc:
            self._fail(f"Failed to load {view_mode} for {design_no}: {exc}")
            return False

        self._notify("success", f"Loaded {view_mode} {design_no}")
        logger.info(
            "Foreground loaded surface_id=%s design_no=%s view_mode=%s",
            self.surface_id,
            design_no,
            view_mode,
        )
        return True

    def _load_design_image(self, design_no: str) -> ForegroundImage:
        asset = self._asset_resolver.fetch_design_image(design_no)
        handle = self._resources.acquire(f"asset:{asset.name}", asset.release)
        try:
            image = decode_image(asset.read_bytes(), name=asset.name)
        finally:
            self._resources.release(handle)

        scale = fit_within_square(image.width, image.height, self.options.preview_box_size)
        return ForegroundImage(
            design_no=design_no,
            image=image,
            left=(self.width - image.width * scale) / 2,
            top=(self.height - image.height * scale) / 2,
            scale_x=scale,
            scale_y=scale,
        )

    def _load_worksheet(self, design_no: str) -> DocumentView:
        asset: TemporaryAsset = self._asset_resolver.fetch_worksheet(design_no)
        asset_handle = self._resources.acquire(f"asset:{asset.name}", asset.release)
        try:
            document = self._document_decoder.open(asset)
        except DocumentDecodeError:
            self._resources.release(asset_handle)
            raise

        document_handle = self._resources.acquire(f"document:{asset.name}", document.close)
        return DocumentView(
            design_no=design_no,
            document=document,
            handles=(document_handle, asset_handle),
        )

    def _clear_foreground(self) -> None:
        foreground = self._foreground
        self._foreground = None
        if isinstance(foreground, DocumentView):
            for handle in foreground.handles:
                self._resources.release(handle)
        elif isinstance(foreground, ForegroundImage):
            foreground.image.close()

    def next_page(self) -> bool:
        self._ensure_live()
        if isinstance(self._foreground, DocumentView):
            return self._foreground.next_page()
        return False

    def previous_page(self) -> bool:
        self._ensure_live()
        if isinstance(self._foreground, DocumentView):
            return self._foreground.previous_page()
        return False

    # ------------------------------------------------------------------
    # Object constraints
    # ------------------------------------------------------------------

    def _interactive_object(self) -> ForegroundImage:
        self._ensure_live()
        if not isinstance(self._foreground, ForegroundImage) or not self._foreground.selectable:
            raise NoInteractiveObjectError("No selectable object on the surface.")
        return self._foreground

    def move_object(self, left: float, top: float) -> tuple[float, float]:
        target = self._interactive_object()
        target.left, target.top = clamp_position(
            float(left),
            float(top),
            object_width=target.scaled_width,
            object_height=target.scaled_height,
            surface_width=self.width,
            surface_height=self.height,
        )
        return target.left, target.top

    def scale_object(self, scale_x: float, scale_y: float) -> tuple[float, float]:
        target = self._interactive_object()
        target.scale_x, target.scale_y = clamp_scale(
            float(scale_x),
            float(scale_y),
            left=target.left,
            top=target.top,
            natural_width=target.natural_width,
            natural_height=target.natural_height,
            surface_width=self.width,
            surface_height=self.height,
            min_size=self.options.min_object_size,
        )
        return target.scale_x, target.scale_y

    # ------------------------------------------------------------------
    # Background
    # ------------------------------------------------------------------

    def _transition(self, new_background: Background) -> None:
        old_background = self._background
        if old_background is new_background:
            return

        if isinstance(old_background, WebcamBackground):
            self._resources.release(old_background.frame_handle)
            old_background.frame_handle = None
            self._resources.release(old_background.stream_handle)
            self._webcam_frame = None
        elif isinstance(old_background, ImageBackground):
            old_background.image.close()

        self._background = new_background
        logger.debug(
            "Background transition surface_id=%s from=%s to=%s",
            self.surface_id,
            old_background.mode,
            new_background.mode,
        )

    def set_background_color(self, color: str) -> None:
        self._ensure_live()
        color = str(color).strip()
        _parse_color(color)
        self._color = color
        self._transition(ColorBackground(color))

    def set_background_image(self, data: bytes, content_type: str | None) -> bool:
        """
        Install an uploaded image as a cover-fitted, non-interactive background.

        Type and size are checked before decoding. A decode failure reverts the
        background to the solid color and returns False.
        """

        self._ensure_live()
        if not content_type or not content_type.lower().startswith("image/"):
            self._notify("error", "Please select an image file")
            raise BackgroundImageRejectedError(f"Unsupported content type: {content_type!r}")
        if len(data) > self.options.max_background_image_bytes:
            limit_mb = self.options.max_background_image_bytes / (1024 * 1024)
            self._notify("error", f"Image size should be less than {limit_mb:g}MB")
            raise BackgroundImageRejectedError(
                f"Image is {len(data)} bytes; limit is {self.options.max_background_image_bytes}."
            )

        try:
            image = decode_image(data, name="background")
        except ImageDecodeError as exc:
            self._transition(ColorBackground(self._color))
            self._fail(f"Failed to load background image: {exc}")
            return False

        placement = fit_cover(image.width, image.height, self.width, self.height)
        self._transition(ImageBackground(image=image, placement=placement))
        self._notify("success", "Background image updated")
        return True

    def start_webcam(self) -> bool:
        self._ensure_live()
        if isinstance(self._background, WebcamBackground):
            self._transition(ColorBackground(self._color))

        if self._camera_provider is None:
            self._fail("Could not access webcam: no camera available")
            return False

        try:
            stream = self._camera_provider.open_stream(
                width=self.options.webcam_width,
                height=self.options.webcam_height,
            )
        except CameraAccessError as exc:
            self._transition(ColorBackground(self._color))
            self._fail(f"Could not access webcam: {exc}")
            return False

        stream_handle = self._resources.acquire("camera-stream", lambda: stop_stream(stream))
        self._transition(WebcamBackground(stream=stream, stream_handle=stream_handle))
        self._schedule_frame()
        logger.info("Webcam started surface_id=%s", self.surface_id)
        return True

    def stop_webcam(self) -> None:
        self._ensure_live()
        was_streaming = isinstance(self._background, WebcamBackground)
        self._transition(ColorBackground(self._color))
        if was_streaming:
            logger.info("Webcam stopped surface_id=%s", self.surface_id)

    def _schedule_frame(self) -> None:
        background = self._background
        if not isinstance(background, WebcamBackground) or self._disposed:
            return
        scheduler = self._frame_scheduler
        frame_id = scheduler.request_frame(self._draw_webcam_frame)
        background.frame_handle = self._resources.acquire(
            "frame-callback",
            lambda: scheduler.cancel_frame(frame_id),
        )

    def _draw_webcam_frame(self) -> None:
        background = self._background
        if self._disposed or not isinstance(background, WebcamBackground):
            return
        self._resources.forget(background.frame_handle)
        background.frame_handle = None

        try:
            frame = background.stream.read_frame()
        except CameraAccessError as exc:
            self._transition(ColorBackground(self._color))
            self._fail(f"Webcam stream lost: {exc}")
            return

        # Background layer only; the foreground is drawn at render time.
        layer = self._blank()
        if frame is not None:
            placement = fit_contain(frame.width, frame.height, self.width, self.height)
            resized = frame.convert("RGBA").resize(placement.size)
            layer.paste(resized, placement.box, resized)
        self._webcam_frame = layer
        self._schedule_frame()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _blank(self) -> Image.Image:
        return Image.new("RGBA", (self.width, self.height), ImageColor.getcolor(self._color, "RGBA"))

    def _draw_foreground(self, canvas: Image.Image) -> None:
        target = self._foreground
        if not isinstance(target, ForegroundImage):
            return
        size = (max(1, round(target.scaled_width)), max(1, round(target.scaled_height)))
        resized = target.image.resize(size)
        canvas.paste(resized, (round(target.left), round(target.top)), resized)

    def render(self) -> Image.Image:
        self._ensure_live()

        if self.view_mode == ViewMode.WORKSHEET:
            return self._render_worksheet()

        background = self._background
        if isinstance(background, WebcamBackground) and self._webcam_frame is not None:
            canvas = self._webcam_frame.copy()
        else:
            canvas = self._blank()
        if isinstance(background, ImageBackground):
            resized = background.image.resize(background.placement.size)
            canvas.paste(resized, background.placement.box, resized)
        self._draw_foreground(canvas)
        return canvas

    def _render_worksheet(self) -> Image.Image:
        canvas = self._blank()
        view = self._foreground
        if not isinstance(view, DocumentView):
            return canvas

        try:
            page = view.document.render_page(
                view.current_page,
                scale=self.options.worksheet_render_scale,
            )
        except DocumentDecodeError as exc:
            self._fail(f"Failed to render page {view.current_page}: {exc}")
            return canvas

        placement = fit_contain(page.width, page.height, self.width, self.height)
        resized = page.resize(placement.size)
        canvas.paste(resized, placement.box, resized)
        return canvas

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def _notify(self, level: str, message: str) -> None:
        self._notifications.append(SurfaceNotice(level=level, message=message))

    def _fail(self, message: str) -> None:
        self.error = message
        self._notify("error", message)
        logger.warning("Surface error surface_id=%s error=%s", self.surface_id, message)


def _parse_color(color: str) -> tuple[int, ...]:
    try:
        return ImageColor.getrgb(color)
    except ValueError as exc:
        raise InvalidColorError(f"Invalid color: {color!r}") from exc


__all__ = [
    "DesignCanvas",
    "SurfaceNotice",
    "SurfaceOptions",
    "decode_image",
]

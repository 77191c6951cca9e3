"""
app/api/routers/design_preview.py

Preview surface HTTP endpoints.

Asset and decode failures do not fail the request: the surface keeps
working and reports them through ``error`` and ``notifications``.
"""

from __future__ import annotations

import io
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import APIRouter, Depends, HTTPException, Response, UploadFile, status

from app.api.dependencies import get_image_upload
from app.schemas.design_preview import (
    BackgroundColorRequest,
    ForegroundResponse,
    LoadDesignRequest,
    MoveObjectRequest,
    PageChangeResponse,
    PreviewCreateRequest,
    PreviewNotificationResponse,
    PreviewStateResponse,
    ScaleObjectRequest,
)
from app.services.preview_session_service import (
    PreviewSessionNotFoundError,
    PreviewSessionService,
    get_preview_session_service,
)
from compositor.errors import (
    BackgroundImageRejectedError,
    InvalidColorError,
    NoInteractiveObjectError,
    SurfaceDisposedError,
)
from compositor.surface import DesignCanvas

router = APIRouter(prefix="/previews", tags=["previews"])


def _state_response(canvas: DesignCanvas) -> PreviewStateResponse:
    state = canvas.describe()
    foreground = state["foreground"]
    return PreviewStateResponse(
        surface_id=state["surface_id"],
        width=state["width"],
        height=state["height"],
        view_mode=state["view_mode"],
        background_mode=state["background_mode"],
        background_color=state["background_color"],
        foreground=ForegroundResponse(**foreground) if foreground else None,
        error=state["error"],
        active_resources=state["active_resources"],
        notifications=[PreviewNotificationResponse(**notice) for notice in state["notifications"]],
    )


@contextmanager
def _open_canvas(preview_service: PreviewSessionService, surface_id: str) -> Iterator[DesignCanvas]:
    """
    Lock the session and translate surface errors to HTTP responses.
    """

    try:
        session = preview_service.get_session(surface_id)
    except PreviewSessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    with session.use() as canvas:
        try:
            yield canvas
        except SurfaceDisposedError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        except (InvalidColorError, BackgroundImageRejectedError) as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        except NoInteractiveObjectError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc


@router.post("", response_model=PreviewStateResponse, status_code=status.HTTP_201_CREATED)
def create_preview(
    request: PreviewCreateRequest,
    preview_service: PreviewSessionService = Depends(get_preview_session_service),
) -> PreviewStateResponse:
    try:
        session = preview_service.create_session(
            width=request.width,
            height=request.height,
            view_mode=request.view_mode,
            background_color=request.background_color,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    with session.use() as canvas:
        return _state_response(canvas)


@router.get("/{surface_id}", response_model=PreviewStateResponse)
def get_preview(
    surface_id: str,
    preview_service: PreviewSessionService = Depends(get_preview_session_service),
) -> PreviewStateResponse:
    with _open_canvas(preview_service, surface_id) as canvas:
        return _state_response(canvas)


@router.delete("/{surface_id}", status_code=status.HTTP_204_NO_CONTENT)
def dispose_preview(
    surface_id: str,
    preview_service: PreviewSessionService = Depends(get_preview_session_service),
) -> Response:
    try:
        preview_service.dispose_session(surface_id)
    except PreviewSessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{surface_id}/design", response_model=PreviewStateResponse)
def load_design(
    surface_id: str,
    request: LoadDesignRequest,
    preview_service: PreviewSessionService = Depends(get_preview_session_service),
) -> PreviewStateResponse:
    with _open_canvas(preview_service, surface_id) as canvas:
        try:
            canvas.load_design(request.design_no, request.view_mode)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        return _state_response(canvas)


@router.put("/{surface_id}/background/color", response_model=PreviewStateResponse)
def set_background_color(
    surface_id: str,
    request: BackgroundColorRequest,
    preview_service: PreviewSessionService = Depends(get_preview_session_service),
) -> PreviewStateResponse:
    with _open_canvas(preview_service, surface_id) as canvas:
        canvas.set_background_color(request.color)
        return _state_response(canvas)


@router.post("/{surface_id}/background/image", response_model=PreviewStateResponse)
def set_background_image(
    surface_id: str,
    file: UploadFile = Depends(get_image_upload),
    preview_service: PreviewSessionService = Depends(get_preview_session_service),
) -> PreviewStateResponse:
    try:
        with _open_canvas(preview_service, surface_id) as canvas:
            # One byte past the limit is enough for the surface to reject oversize uploads.
            data = file.file.read(canvas.options.max_background_image_bytes + 1)
            canvas.set_background_image(data, file.content_type)
            return _state_response(canvas)
    finally:
        file.file.close()


@router.post("/{surface_id}/object/move", response_model=PreviewStateResponse)
def move_object(
    surface_id: str,
    request: MoveObjectRequest,
    preview_service: PreviewSessionService = Depends(get_preview_session_service),
) -> PreviewStateResponse:
    with _open_canvas(preview_service, surface_id) as canvas:
        canvas.move_object(request.left, request.top)
        return _state_response(canvas)


@router.post("/{surface_id}/object/scale", response_model=PreviewStateResponse)
def scale_object(
    surface_id: str,
    request: ScaleObjectRequest,
    preview_service: PreviewSessionService = Depends(get_preview_session_service),
) -> PreviewStateResponse:
    with _open_canvas(preview_service, surface_id) as canvas:
        canvas.scale_object(request.scale_x, request.scale_y)
        return _state_response(canvas)


@router.post("/{surface_id}/pages/next", response_model=PageChangeResponse)
def next_page(
    surface_id: str,
    preview_service: PreviewSessionService = Depends(get_preview_session_service),
) -> PageChangeResponse:
    with _open_canvas(preview_service, surface_id) as canvas:
        changed = canvas.next_page()
        return PageChangeResponse(changed=changed, state=_state_response(canvas))


@router.post("/{surface_id}/pages/previous", response_model=PageChangeResponse)
def previous_page(
    surface_id: str,
    preview_service: PreviewSessionService = Depends(get_preview_session_service),
) -> PageChangeResponse:
    with _open_canvas(preview_service, surface_id) as canvas:
        changed = canvas.previous_page()
        return PageChangeResponse(changed=changed, state=_state_response(canvas))


@router.get(
    "/{surface_id}/render.png",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
def render_preview(
    surface_id: str,
    preview_service: PreviewSessionService = Depends(get_preview_session_service),
) -> Response:
    with _open_canvas(preview_service, surface_id) as canvas:
        image = canvas.render()

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return Response(content=buffer.getvalue(), media_type="image/png")

"""
app/schemas/design_preview.py

Request and response schemas for preview surface endpoints.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class PreviewCreateRequest(BaseModel):
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)
    view_mode: Literal["design", "worksheet"] = "design"
    background_color: str | None = None


class LoadDesignRequest(BaseModel):
    design_no: str = Field(..., min_length=1)
    view_mode: Literal["design", "worksheet"] = "design"


class BackgroundColorRequest(BaseModel):
    color: str = Field(..., min_length=1)


class MoveObjectRequest(BaseModel):
    left: float
    top: float


class ScaleObjectRequest(BaseModel):
    scale_x: float = Field(..., gt=0)
    scale_y: float = Field(..., gt=0)


class PreviewNotificationResponse(BaseModel):
    level: str
    message: str


class ForegroundResponse(BaseModel):
    """
    Current foreground object; image fields or page fields are set depending on ``kind``.
    """

    kind: Literal["image", "document"]
    design_no: str
    left: float | None = None
    top: float | None = None
    scale_x: float | None = None
    scale_y: float | None = None
    width: float | None = None
    height: float | None = None
    current_page: int | None = None
    page_count: int | None = None


class PreviewStateResponse(BaseModel):
    """
    API response model for one preview surface.
    """

    surface_id: str
    width: int
    height: int
    view_mode: str
    background_mode: str
    background_color: str
    foreground: ForegroundResponse | None = None
    error: str | None = None
    active_resources: list[str] = Field(default_factory=list)
    notifications: list[PreviewNotificationResponse] = Field(default_factory=list)


class PageChangeResponse(BaseModel):
    changed: bool
    state: PreviewStateResponse

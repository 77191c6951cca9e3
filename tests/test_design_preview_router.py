"""
tests/test_design_preview_router.py

HTTP contract of the preview surface endpoints with an in-memory asset resolver.
"""

from __future__ import annotations

import io

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from PIL import Image

from app.api.routers.design_preview import router
from app.services.preview_session_service import PreviewSessionService, get_preview_session_service
from compositor.errors import AssetResolutionError
from compositor.media import ManualFrameScheduler
from compositor.resources import TemporaryAsset
from compositor.surface import SurfaceOptions


def _png(size: tuple[int, int], color: str) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def _pdf(pages: int) -> bytes:
    images = [Image.new("RGB", (100, 140), "white") for _ in range(pages)]
    buffer = io.BytesIO()
    images[0].save(buffer, format="PDF", save_all=True, append_images=images[1:])
    return buffer.getvalue()


class MemoryResolver:
    def fetch_design_image(self, design_no: str) -> TemporaryAsset:
        if design_no != "AB1001":
            raise AssetResolutionError(f"Design {design_no!r} not found.")
        return TemporaryAsset.from_bytes(_png((200, 150), "blue"), name="AB1001.PNG", suffix=".PNG")

    def fetch_worksheet(self, design_no: str) -> TemporaryAsset:
        if design_no != "AB1001":
            raise AssetResolutionError("Worksheet not found")
        return TemporaryAsset.from_bytes(_pdf(2), name="AB1001.pdf", suffix=".pdf")


@pytest.fixture()
def service() -> PreviewSessionService:
    return PreviewSessionService(
        asset_resolver=MemoryResolver(),
        options=SurfaceOptions(preview_box_size=200, max_background_image_bytes=64 * 1024),
        frame_scheduler_factory=ManualFrameScheduler,
        max_surface_size=2000,
    )


@pytest.fixture()
def client(service: PreviewSessionService) -> TestClient:
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_preview_session_service] = lambda: service
    return TestClient(app)


def _create(client: TestClient, **overrides: object) -> str:
    payload = {"width": 800, "height": 600, **overrides}
    response = client.post("/previews", json=payload)
    assert response.status_code == 201
    return response.json()["surface_id"]


def test_create_returns_initial_state(client: TestClient) -> None:
    response = client.post("/previews", json={"width": 800, "height": 600, "background_color": "#000000"})

    body = response.json()
    assert response.status_code == 201
    assert body["background_mode"] == "color"
    assert body["background_color"] == "#000000"
    assert body["foreground"] is None
    assert body["active_resources"] == []


@pytest.mark.parametrize(
    "payload",
    [
        {"width": 5000, "height": 600},
        {"width": 800, "height": 600, "background_color": "not-a-color"},
    ],
)
def test_invalid_create_is_400(client: TestClient, payload: dict) -> None:
    assert client.post("/previews", json=payload).status_code == 400


def test_load_design_then_drag_is_clamped(client: TestClient) -> None:
    surface_id = _create(client)

    loaded = client.post(f"/previews/{surface_id}/design", json={"design_no": "AB1001"}).json()
    assert loaded["foreground"]["kind"] == "image"
    assert loaded["foreground"]["width"] == pytest.approx(200)

    moved = client.post(f"/previews/{surface_id}/object/move", json={"left": 750, "top": 550}).json()
    assert (moved["foreground"]["left"], moved["foreground"]["top"]) == (600, 450)


def test_failed_load_is_reported_in_state(client: TestClient) -> None:
    surface_id = _create(client)

    response = client.post(f"/previews/{surface_id}/design", json={"design_no": "ZZ0000"})

    assert response.status_code == 200
    body = response.json()
    assert body["foreground"] is None
    assert "ZZ0000" in body["error"]
    assert body["notifications"][-1]["level"] == "error"


def test_gesture_without_object_is_409(client: TestClient) -> None:
    surface_id = _create(client)

    response = client.post(f"/previews/{surface_id}/object/scale", json={"scale_x": 2, "scale_y": 2})

    assert response.status_code == 409


def test_worksheet_paging(client: TestClient) -> None:
    surface_id = _create(client)
    loaded = client.post(
        f"/previews/{surface_id}/design",
        json={"design_no": "AB1001", "view_mode": "worksheet"},
    ).json()
    assert loaded["view_mode"] == "worksheet"
    assert loaded["foreground"]["page_count"] == 2

    forward = client.post(f"/previews/{surface_id}/pages/next").json()
    assert forward["changed"] is True
    assert forward["state"]["foreground"]["current_page"] == 2

    clamped = client.post(f"/previews/{surface_id}/pages/next").json()
    assert clamped["changed"] is False

    back = client.post(f"/previews/{surface_id}/pages/previous").json()
    assert back["state"]["foreground"]["current_page"] == 1


def test_background_color_and_render(client: TestClient) -> None:
    surface_id = _create(client, width=40, height=30)

    assert client.put(f"/previews/{surface_id}/background/color", json={"color": "#ff0000"}).status_code == 200
    assert client.put(f"/previews/{surface_id}/background/color", json={"color": "#zz"}).status_code == 400

    response = client.get(f"/previews/{surface_id}/render.png")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    image = Image.open(io.BytesIO(response.content))
    assert image.size == (40, 30)
    assert image.convert("RGB").getpixel((0, 0)) == (255, 0, 0)


def test_background_image_upload(client: TestClient) -> None:
    surface_id = _create(client)

    response = client.post(
        f"/previews/{surface_id}/background/image",
        files={"file": ("wall.png", io.BytesIO(_png((50, 50), "green")), "image/png")},
    )

    assert response.status_code == 200
    assert response.json()["background_mode"] == "image"


@pytest.mark.parametrize(
    "filename, content, content_type",
    [
        ("notes.txt", b"hello", "text/plain"),
        ("huge.png", b"\x00" * (64 * 1024 + 1), "image/png"),
    ],
)
def test_background_image_rejections(client: TestClient, filename: str, content: bytes, content_type: str) -> None:
    surface_id = _create(client)

    response = client.post(
        f"/previews/{surface_id}/background/image",
        files={"file": (filename, io.BytesIO(content), content_type)},
    )

    assert response.status_code == 400
    state = client.get(f"/previews/{surface_id}").json()
    assert state["background_mode"] == "color"
    assert state["notifications"][-1]["level"] == "error"


def test_dispose_then_404(client: TestClient) -> None:
    surface_id = _create(client)

    assert client.delete(f"/previews/{surface_id}").status_code == 204
    assert client.get(f"/previews/{surface_id}").status_code == 404
    assert client.delete(f"/previews/{surface_id}").status_code == 404

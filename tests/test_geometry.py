"""
tests/test_geometry.py

Pure geometry of the preview surface: fits and gesture clamping.
"""

from __future__ import annotations

import pytest

from compositor.geometry import clamp_position, clamp_scale, fit_contain, fit_cover, fit_within_square


class TestFits:
    def test_contain_letterboxes_wide_source(self) -> None:
        placement = fit_contain(1920, 1080, 800, 600)

        assert placement.scale == pytest.approx(800 / 1920)
        assert placement.width == pytest.approx(800)
        assert placement.height == pytest.approx(450)
        assert placement.left == pytest.approx(0)
        assert placement.top == pytest.approx(75)

    def test_contain_pillarboxes_tall_source(self) -> None:
        placement = fit_contain(300, 600, 800, 600)

        assert placement.width == pytest.approx(300)
        assert placement.left == pytest.approx(250)
        assert placement.top == pytest.approx(0)

    def test_cover_fills_and_crops_evenly(self) -> None:
        placement = fit_cover(1000, 1000, 800, 600)

        assert placement.scale == pytest.approx(0.8)
        assert placement.width == pytest.approx(800)
        assert placement.height == pytest.approx(800)
        assert placement.top == pytest.approx(-100)
        assert placement.box == (0, -100)

    def test_fit_within_square_uses_longest_side(self) -> None:
        assert fit_within_square(1000, 500, 250) == pytest.approx(0.25)
        assert fit_within_square(100, 400, 250) == pytest.approx(0.625)

    def test_zero_sized_source_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            fit_contain(0, 10, 100, 100)


class TestClampPosition:
    def test_drag_past_bottom_right_is_pulled_back(self) -> None:
        assert clamp_position(
            750,
            550,
            object_width=200,
            object_height=150,
            surface_width=800,
            surface_height=600,
        ) == (600, 450)

    def test_negative_offsets_clamp_to_origin(self) -> None:
        assert clamp_position(
            -20,
            -5,
            object_width=200,
            object_height=150,
            surface_width=800,
            surface_height=600,
        ) == (0, 0)

    def test_position_inside_bounds_is_unchanged(self) -> None:
        assert clamp_position(
            100,
            120,
            object_width=200,
            object_height=150,
            surface_width=800,
            surface_height=600,
        ) == (100, 120)

    def test_object_larger_than_surface_gets_negative_offset(self) -> None:
        assert clamp_position(
            10,
            10,
            object_width=1000,
            object_height=700,
            surface_width=800,
            surface_height=600,
        ) == (-200, -100)


class TestClampScale:
    def _clamp(self, scale_x: float, scale_y: float, *, left: float = 0, top: float = 0) -> tuple[float, float]:
        return clamp_scale(
            scale_x,
            scale_y,
            left=left,
            top=top,
            natural_width=100,
            natural_height=100,
            surface_width=800,
            surface_height=600,
            min_size=50,
        )

    def test_growth_past_right_and_bottom_edges_is_limited(self) -> None:
        scale_x, scale_y = self._clamp(10, 10, left=300, top=200)

        assert scale_x == pytest.approx(5.0)
        assert scale_y == pytest.approx(4.0)

    def test_shrinking_below_minimum_size_is_limited(self) -> None:
        assert self._clamp(0.1, 0.2) == (pytest.approx(0.5), pytest.approx(0.5))

    def test_valid_scale_is_unchanged(self) -> None:
        assert self._clamp(1.5, 2.0, left=10, top=10) == (1.5, 2.0)

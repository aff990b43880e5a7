"""Unit tests for region geometry helpers."""
import itertools

import pytest

from gear_ocr.core.entities import Display, Region, ZoneRatio
from gear_ocr.core.exceptions import ConfigError
from gear_ocr.utils.geometry import (
    clamp_region, rect_from_ratio, display_containing, clamp_to_displays, contains, union_region, translate
)

SCREEN = Region(0, 0, 1920, 1080)


class TestClampRegion:
    """Test suite for clamp_region."""

    def test_inside_rect_unchanged(self):
        rect = Region(200, 120, 560, 720)
        assert clamp_region(rect, SCREEN) == rect

    def test_overhang_is_cut_to_bounds(self):
        clamped = clamp_region(Region(1800, 900, 400, 400), SCREEN)
        assert clamped == Region(1800, 900, 120, 180)

    def test_too_small_grows_inward_from_clamped_edge(self):
        # Only 20px remain on screen at the right edge; grow back to the minimum
        clamped = clamp_region(Region(1900, 100, 200, 200), SCREEN, min_width=80, min_height=80)
        assert clamped.right == 1920
        assert clamped.width == 80

    def test_fully_offscreen_rect_is_pulled_back(self):
        clamped = clamp_region(Region(-500, -500, 100, 100), SCREEN)
        assert clamped == Region(0, 0, 80, 80)

    def test_minimum_capped_at_display_size(self):
        small = Region(0, 0, 50, 40)
        clamped = clamp_region(Region(0, 0, 10, 10), small, min_width=80, min_height=80)
        assert clamped == small

    @pytest.mark.parametrize("rect", [
        Region(-50, -50, 30, 30),
        Region(1900, 1000, 500, 500),
        Region(100, 100, 10, 10),
        Region(0, 0, 5000, 5000),
        Region(960, 540, 0, 0),
    ])
    def test_idempotent_and_within_bounds(self, rect):
        once = clamp_region(rect, SCREEN)
        twice = clamp_region(once, SCREEN)

        assert once == twice
        assert contains(SCREEN, once)
        assert once.width >= 80 and once.height >= 80


class TestRectFromRatio:
    def test_maps_onto_parent_offset(self):
        parent = Region(100, 50, 400, 200)
        rect = rect_from_ratio(ZoneRatio(0.5, 0.25, 0.25, 0.5), parent)
        assert rect == Region(300, 100, 100, 100)

    def test_overhanging_ratio_is_shrunk(self):
        parent = Region(0, 0, 100, 100)
        rect = rect_from_ratio(ZoneRatio(0.8, 0.8, 0.5, 0.5), parent)
        assert rect == Region(80, 80, 20, 20)

    def test_zone_at_edge_is_empty(self):
        rect = rect_from_ratio(ZoneRatio(1.0, 0.0, 0.5, 0.5), Region(0, 0, 100, 100))
        assert rect.is_empty

    def test_result_always_contained(self):
        parent = Region(10, 20, 333, 177)
        steps = (0.0, 0.3, 0.65, 1.0)
        for left, top, w, h in itertools.product(steps, repeat=4):
            rect = rect_from_ratio(ZoneRatio(left, top, w, h), parent)
            assert contains(parent, rect)


class TestDisplays:
    """Test suite for display lookup and clamping across monitors."""

    def test_point_on_secondary_display(self, displays):
        assert display_containing((2000, 500), displays).id == 2

    def test_boundary_belongs_to_right_display(self, displays):
        assert display_containing((1920, 10), displays).id == 2

    def test_point_off_all_displays_uses_nearest(self, displays):
        assert display_containing((-300, 500), displays).id == 1
        assert display_containing((3500, 500), displays).id == 2

    def test_no_displays_raises(self):
        with pytest.raises(ConfigError):
            display_containing((0, 0), [])

    def test_clamp_to_displays_uses_display_of_center(self, displays):
        rect = clamp_to_displays(Region(3000, 900, 400, 400), displays)
        assert contains(displays[1].bounds, rect)
        assert rect == Region(3000, 900, 200, 124)


def test_union_and_translate():
    a, b = Region(0, 0, 10, 10), Region(20, 5, 10, 10)
    assert union_region(a, b) == Region(0, 0, 30, 15)
    assert translate(a, 5, -5) == Region(5, -5, 10, 10)

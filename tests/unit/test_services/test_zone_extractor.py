"""Unit tests for zone extraction."""
import numpy as np

from gear_ocr.core.entities import Region, ZoneRatio
from gear_ocr.services.zone_extractor import ZoneExtractor
from gear_ocr.utils.geometry import contains


class TestZoneExtractor:
    """Test suite for ZoneExtractor."""

    def test_default_zones_on_tooltip(self, config, dark_tooltip):
        extractor = ZoneExtractor.from_config(config)

        zones = extractor.extract(dark_tooltip)

        assert set(zones) == {"title", "type", "stat_names", "digits", "stats"}
        assert zones["digits"].rect == Region(336, 216, 196, 432)
        assert zones["digits"].image.shape == (432, 196, 3)

    def test_stats_zone_is_union_of_columns(self, config):
        extractor = ZoneExtractor.from_config(config)

        assert extractor.zone_rect("stats", 560, 720) == Region(28, 216, 504, 432)
        assert extractor.digits_cutoff_x(560, 720) == 308

    def test_every_zone_within_capture(self, config):
        extractor = ZoneExtractor.from_config(config)
        frame = Region(0, 0, 333, 211)

        for name in ("title", "type", "stat_names", "digits", "stats"):
            rect = extractor.zone_rect(name, frame.width, frame.height)
            assert rect is not None
            assert contains(frame, rect)

    def test_degenerate_zone_is_skipped(self):
        extractor = ZoneExtractor({"edge": ZoneRatio(1.0, 0.0, 0.2, 0.2)})
        image = np.zeros((100, 100, 3), dtype=np.uint8)

        assert extractor.extract_zone(image, "edge") is None
        assert extractor.extract(image) == {"edge": None}

    def test_unknown_zone_and_empty_image(self, config):
        extractor = ZoneExtractor.from_config(config)

        assert extractor.extract_zone(np.zeros((10, 10, 3), dtype=np.uint8), "nope") is None
        assert extractor.extract_zone(np.zeros((0, 0, 3), dtype=np.uint8), "title") is None

    def test_cutoff_without_digit_zone(self):
        extractor = ZoneExtractor({"title": ZoneRatio(0.0, 0.0, 1.0, 0.1)})
        assert extractor.digits_cutoff_x(100, 100) == 0

"""Unit tests for the overlay session."""
import threading

import pytest

from gear_ocr.core.entities import Region
from gear_ocr.core.exceptions import ConfigError
from gear_ocr.services.overlay_session import OverlaySession
from gear_ocr.utils.geometry import contains


class TestOverlaySession:
    """Test suite for OverlaySession."""

    def test_initial_region_is_clamped(self, displays):
        session = OverlaySession(Region(1500, 700, 400, 600), displays)
        assert session.snapshot() == Region(1500, 700, 400, 380)

    def test_from_config(self, config, displays):
        session = OverlaySession.from_config(config, displays)
        assert session.snapshot() == Region(200, 120, 560, 720)

    def test_no_displays(self):
        with pytest.raises(ConfigError):
            OverlaySession(Region(0, 0, 100, 100), [])

    def test_move_and_resize(self, displays):
        session = OverlaySession(Region(100, 100, 300, 300), displays)

        assert session.move(50, -20) == Region(150, 80, 300, 300)
        assert session.resize(10, 10) == Region(150, 80, 80, 80)

    def test_move_onto_second_display(self, displays):
        session = OverlaySession(Region(100, 100, 300, 300), displays)

        region = session.move(2000, 0)

        assert contains(displays[1].bounds, region)

    def test_listeners_notified_on_change_only(self, displays):
        session = OverlaySession(Region(100, 100, 300, 300), displays)
        seen = []
        session.add_region_listener(seen.append)

        session.set_region(Region(100, 100, 300, 300))
        session.move(10, 0)
        session.remove_region_listener(seen.append)
        session.move(10, 0)

        assert seen == [Region(110, 100, 300, 300)]

    def test_failing_listener_does_not_block_edit(self, displays):
        session = OverlaySession(Region(100, 100, 300, 300), displays)

        def broken(region):
            raise RuntimeError("boom")

        session.add_region_listener(broken)
        assert session.move(5, 5) == Region(105, 105, 300, 300)

    def test_flags(self, displays):
        session = OverlaySession(Region(100, 100, 300, 300), displays)
        assert not session.auto_capture and not session.editing

        session.auto_capture = True
        session.editing = True

        assert session.auto_capture and session.editing

    def test_display_change_reclamps(self, displays):
        session = OverlaySession(Region(2000, 100, 300, 300), displays)

        session.set_displays(displays[:1])

        assert contains(displays[0].bounds, session.snapshot())

    def test_concurrent_edits_keep_region_valid(self, displays):
        session = OverlaySession(Region(100, 100, 300, 300), displays)

        def jiggle():
            for _ in range(200):
                session.move(7, 3)
                session.move(-7, -3)

        threads = [threading.Thread(target=jiggle) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        region = session.snapshot()
        assert any(contains(d.bounds, region) for d in displays)
        assert region.width == 300 and region.height == 300

    def test_roi_dict(self, displays):
        session = OverlaySession(Region(100, 100, 300, 300), displays)
        assert session.to_roi_dict() == {"x": 100, "y": 100, "width": 300, "height": 300}

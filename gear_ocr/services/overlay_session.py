"""Mutable overlay state shared by the capture controller and the UI layer."""

import logging
import threading
from typing import Callable, List, Optional, Sequence

from ..core.entities import Display, Region
from ..utils.geometry import clamp_to_displays

logger = logging.getLogger(__name__)

RegionListener = Callable[[Region], None]


class OverlaySession:
    """Owns the watched region and the overlay's mode flags.

    Readers take a :meth:`snapshot` at the start of a capture run; edits made
    while a run is in flight only affect the next run.
    """

    def __init__(self, region: Region, displays: Sequence[Display],
                 min_width: int = 80, min_height: int = 80):
        self._lock = threading.Lock()
        self._displays: List[Display] = list(displays)
        self.min_width = min_width
        self.min_height = min_height
        self._region = clamp_to_displays(region, self._displays, min_width, min_height)
        self._auto_capture = False
        self._editing = False
        self._listeners: List[RegionListener] = []

    @classmethod
    def from_config(cls, config, displays: Sequence[Display]) -> "OverlaySession":
        return cls(config.get_roi(), displays, config.min_roi_width, config.min_roi_height)

    def snapshot(self) -> Region:
        with self._lock:
            return self._region

    @property
    def displays(self) -> List[Display]:
        with self._lock:
            return list(self._displays)

    def set_displays(self, displays: Sequence[Display]) -> Region:
        """Monitor layout changed; re-clamp the current region against it."""
        with self._lock:
            self._displays = list(displays)
            current = self._region
        return self.set_region(current)

    def set_region(self, region: Region) -> Region:
        """Clamp ``region`` onto its display and store it. Returns the stored region."""
        with self._lock:
            clamped = clamp_to_displays(region, self._displays, self.min_width, self.min_height)
            changed = clamped != self._region
            self._region = clamped
            listeners = list(self._listeners)

        if changed:
            logger.info(f"Region set to {clamped.as_tuple()}")
            for listener in listeners:
                try:
                    listener(clamped)
                except Exception as e:
                    logger.error(f"Error in region listener: {e}")
        return clamped

    def move(self, dx: int, dy: int) -> Region:
        r = self.snapshot()
        return self.set_region(Region(r.x + dx, r.y + dy, r.width, r.height))

    def resize(self, width: int, height: int) -> Region:
        r = self.snapshot()
        return self.set_region(Region(r.x, r.y, width, height))

    @property
    def auto_capture(self) -> bool:
        with self._lock:
            return self._auto_capture

    @auto_capture.setter
    def auto_capture(self, enabled: bool) -> None:
        with self._lock:
            self._auto_capture = bool(enabled)

    @property
    def editing(self) -> bool:
        with self._lock:
            return self._editing

    @editing.setter
    def editing(self, enabled: bool) -> None:
        with self._lock:
            self._editing = bool(enabled)

    def add_region_listener(self, listener: RegionListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_region_listener(self, listener: RegionListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def to_roi_dict(self, region: Optional[Region] = None) -> dict:
        """The region in the shape ``Config.roi`` stores."""
        return (region or self.snapshot()).to_dict()

"""Screen capture provider backed by ``mss``."""

import asyncio
import logging
from typing import List

import numpy as np
from mss import mss
from mss.exception import ScreenShotError

from ..core.entities import Display, Region
from ..core.exceptions import CaptureError

logger = logging.getLogger(__name__)


class ScreenCaptureService:
    """Grabs absolute screen rectangles as BGR ``numpy`` buffers.

    ``mss`` handles are not shareable across threads, so every call opens its
    own context.
    """

    def list_displays(self) -> List[Display]:
        """Monitors known to the OS; the first one reported is treated as primary."""
        try:
            with mss() as sct:
                monitors = list(sct.monitors[1:])
        except ScreenShotError as e:
            raise CaptureError(f"Could not enumerate displays: {e}") from e

        displays = [
            Display(
                id=index,
                bounds=Region(x=m["left"], y=m["top"], width=m["width"], height=m["height"]),
                is_primary=index == 1,
            )
            for index, m in enumerate(monitors, start=1)
        ]
        logger.debug(f"Found {len(displays)} display(s)")
        return displays

    def grab(self, region: Region) -> np.ndarray:
        """Blocking capture of ``region``."""
        if region.is_empty:
            raise CaptureError(f"Cannot capture an empty region: {region.as_tuple()}")

        monitor = {"left": region.x, "top": region.y, "width": region.width, "height": region.height}
        try:
            with mss() as sct:
                shot = sct.grab(monitor)
        except ScreenShotError as e:
            raise CaptureError(f"Screen capture failed for {region.as_tuple()}: {e}") from e

        # BGRA -> BGR
        frame = np.asarray(shot, dtype=np.uint8)[:, :, :3]
        return np.ascontiguousarray(frame)

    async def capture_region(self, region: Region) -> np.ndarray:
        return await asyncio.to_thread(self.grab, region)

"""Crop a captured ROI into named semantic zones."""

import logging
from typing import Dict, Mapping, Optional

import numpy as np

from ..core.constants import ZONE_STAT_NAMES, ZONE_DIGITS, ZONE_STATS
from ..core.entities import ExtractedZone, Region, ZoneRatio
from ..utils.geometry import rect_from_ratio, union_region
from ..utils.image_utils import crop_image

logger = logging.getLogger(__name__)


class ZoneExtractor:
    """Maps a fixed table of zone ratios onto captured buffers.

    Besides the configured zones, a derived ``stats`` zone covering both the
    stat-name and digit columns is produced; word-box reconstruction needs
    labels and numbers in one coordinate space.
    """

    def __init__(self, zone_ratios: Mapping[str, ZoneRatio]):
        self.zone_ratios: Dict[str, ZoneRatio] = dict(zone_ratios)

    @classmethod
    def from_config(cls, config) -> "ZoneExtractor":
        return cls(config.get_zone_ratios())

    def zone_rect(self, name: str, width: int, height: int) -> Optional[Region]:
        """Pixel rectangle of zone ``name`` in a ``width`` x ``height`` buffer."""
        parent = Region(0, 0, width, height)
        if name == ZONE_STATS:
            names_rect = self.zone_rect(ZONE_STAT_NAMES, width, height)
            digits_rect = self.zone_rect(ZONE_DIGITS, width, height)
            if names_rect is None or digits_rect is None:
                return names_rect or digits_rect
            return union_region(names_rect, digits_rect)

        ratio = self.zone_ratios.get(name)
        if ratio is None:
            return None
        rect = rect_from_ratio(ratio, parent)
        return None if rect.is_empty else rect

    def extract_zone(self, image: np.ndarray, name: str) -> Optional[ExtractedZone]:
        """Crop one zone; None when it is unknown or degenerates to zero area."""
        if image is None or image.size == 0:
            return None
        h, w = image.shape[:2]
        rect = self.zone_rect(name, w, h)
        if rect is None:
            logger.debug(f"Zone '{name}' is empty for a {w}x{h} capture")
            return None
        return ExtractedZone(name=name, rect=rect, image=crop_image(image, rect))

    def extract(self, image: np.ndarray) -> Dict[str, Optional[ExtractedZone]]:
        """Crop every configured zone plus the derived stats zone."""
        names = list(self.zone_ratios)
        if ZONE_STAT_NAMES in self.zone_ratios or ZONE_DIGITS in self.zone_ratios:
            names.append(ZONE_STATS)
        return {name: self.extract_zone(image, name) for name in names}

    def digits_cutoff_x(self, width: int, height: int) -> int:
        """Left edge of the numeric column, relative to the stats zone."""
        stats_rect = self.zone_rect(ZONE_STATS, width, height)
        digits_rect = self.zone_rect(ZONE_DIGITS, width, height)
        if stats_rect is None or digits_rect is None:
            return 0
        return digits_rect.x - stats_rect.x

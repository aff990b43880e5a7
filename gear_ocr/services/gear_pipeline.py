"""Capture-to-record pipeline: zones, preprocessing, OCR and reconstruction.

Stages run strictly in order for one buffer. Blocking work (capture, image
processing, every OCR call) is pushed to worker threads so the event loop
that drives the overlay stays responsive.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

import numpy as np

from ..core.constants import ZONE_TITLE, ZONE_TYPE, ZONE_STAT_NAMES, ZONE_DIGITS, ZONE_STATS
from ..core.entities import CaptureReason, ExtractedZone, GearRecord, Region, orientation_of
from ..core.exceptions import ValidationError
from ..core.logging_config import CorrelationContext
from .capture_service import ScreenCaptureService
from .ocr_service import OcrService
from .preprocessing_service import ImagePreprocessor
from .record_reconstructor import RecordReconstructor
from .zone_extractor import ZoneExtractor

logger = logging.getLogger(__name__)


class GearPipeline:
    """Turns one captured ROI buffer into a :class:`GearRecord`."""

    def __init__(self, extractor: ZoneExtractor, preprocessor: ImagePreprocessor, ocr: OcrService,
                 reconstructor: RecordReconstructor, capture: Optional[ScreenCaptureService] = None):
        self.extractor = extractor
        self.preprocessor = preprocessor
        self.ocr = ocr
        self.reconstructor = reconstructor
        self.capture = capture

    @classmethod
    def from_config(cls, config, engine=None, capture: Optional[ScreenCaptureService] = None,
                    color_classifier=None) -> "GearPipeline":
        return cls(
            extractor=ZoneExtractor.from_config(config),
            preprocessor=ImagePreprocessor.from_config(config),
            ocr=OcrService.from_config(config, engine=engine),
            reconstructor=RecordReconstructor.from_config(config, color_classifier=color_classifier),
            capture=capture,
        )

    async def snap_now(self, region: Region) -> GearRecord:
        """Capture ``region`` immediately and process it. Raises ``CaptureError``."""
        image = await self._capture(region)
        return await self.process_image(image, reason=CaptureReason.MANUAL, region=region)

    async def on_stable_change_detected(self, region: Region, image: Optional[np.ndarray] = None) -> GearRecord:
        """Entry point for the change detector; reuses the sampled buffer when given."""
        if image is None:
            image = await self._capture(region)
        return await self.process_image(image, reason=CaptureReason.AUTO, region=region)

    async def _capture(self, region: Region) -> np.ndarray:
        if self.capture is None:
            self.capture = ScreenCaptureService()
        return await self.capture.capture_region(region)

    async def process_image(self, image: np.ndarray, reason: CaptureReason = CaptureReason.MANUAL,
                            region: Optional[Region] = None) -> GearRecord:
        """Run every stage over an already captured ROI buffer."""
        if image is None or not isinstance(image, np.ndarray) or image.ndim not in (2, 3) or image.size == 0:
            raise ValidationError("Expected a non-empty 2D or 3D image buffer")

        with CorrelationContext() as corr_id:
            start = time.perf_counter()
            h, w = image.shape[:2]
            logger.info(f"Processing {w}x{h} capture ({reason.value})")

            zones = await asyncio.to_thread(self.extractor.extract, image)
            header_lines = await self._read_header(zones)

            record = await self._reconstruct_from_words(zones, header_lines, w, h)
            if not (record.main_stats or record.substats):
                logger.debug("Word-box path produced no stats, falling back to column text")
                record = await self._reconstruct_from_text(zones, header_lines)

            elapsed_ms = (time.perf_counter() - start) * 1000
            record.meta.update({
                "orientation": orientation_of(image),
                "reason": reason.value,
                "captured_at": datetime.now(timezone.utc).isoformat(),
                "elapsed_ms": round(elapsed_ms, 1),
                "correlation_id": corr_id,
                "size": [w, h],
            })
            if region is not None:
                record.meta["region"] = region.to_dict()

            logger.info(f"Record '{record.title}' ({record.type}): {len(record.main_stats)} main, "
                        f"{len(record.substats)} sub in {elapsed_ms:.0f}ms")
            return record

    async def _read_header(self, zones: Dict[str, Optional[ExtractedZone]]) -> List[str]:
        lines: List[str] = []
        for name in (ZONE_TITLE, ZONE_TYPE):
            zone = zones.get(name)
            if zone is None:
                continue
            prepared = await asyncio.to_thread(self.preprocessor.prepare_label, zone.image)
            candidate = await self.ocr.read_labels(prepared)
            lines.extend(line.strip() for line in candidate.text.splitlines() if line.strip())
        return lines

    async def _reconstruct_from_words(self, zones: Dict[str, Optional[ExtractedZone]],
                                      header_lines: List[str], width: int, height: int) -> GearRecord:
        zone = zones.get(ZONE_STATS)
        if zone is None:
            return GearRecord()

        prepared = await asyncio.to_thread(self.preprocessor.prepare_label, zone.image)
        candidate = await self.ocr.read_words(prepared)
        if not candidate.words:
            return GearRecord()

        cutoff_x = self.extractor.digits_cutoff_x(width, height)
        return await asyncio.to_thread(
            self.reconstructor.reconstruct_from_words,
            candidate.words, zone.image, cutoff_x, header_lines,
        )

    async def _reconstruct_from_text(self, zones: Dict[str, Optional[ExtractedZone]],
                                     header_lines: List[str]) -> GearRecord:
        label_text, digits_text = "", ""

        names = zones.get(ZONE_STAT_NAMES)
        if names is not None:
            prepared = await asyncio.to_thread(self.preprocessor.prepare_label, names.image)
            label_text = (await self.ocr.read_labels(prepared)).text

        digits = zones.get(ZONE_DIGITS)
        if digits is not None:
            variants = await asyncio.to_thread(self.preprocessor.prepare_digits, digits.image)
            digits_text = (await self.ocr.read_digits(variants)).text

        return self.reconstructor.reconstruct_from_text(label_text, digits_text, "\n".join(header_lines))

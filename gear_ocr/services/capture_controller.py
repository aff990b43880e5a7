"""Coordinates manual snaps and the auto-capture loop over one overlay session."""

import asyncio
import logging
from typing import Callable, List, Optional

import numpy as np

from ..core.entities import CaptureReason, GearRecord, Region
from ..core.exceptions import ApplicationError, CaptureError, ValidationError
from .capture_service import ScreenCaptureService
from .change_detection_service import ChangeDetector
from .gear_pipeline import GearPipeline
from .overlay_session import OverlaySession

logger = logging.getLogger(__name__)

RecordCallback = Callable[[GearRecord], None]
ErrorCallback = Callable[[Exception], None]


class CaptureController:
    """Single entry point for capture requests.

    At most one capture runs at a time; a request arriving while another is
    in flight is dropped, not queued. Auto capture samples the ROI on a
    fixed interval and only runs the pipeline once the change detector
    reports a settled change. Stopping auto capture, or editing the ROI,
    resets the detector.
    """

    def __init__(self, session: OverlaySession, pipeline: GearPipeline, detector: ChangeDetector,
                 capture: Optional[ScreenCaptureService] = None, interval_s: float = 0.8):
        self.session = session
        self.pipeline = pipeline
        self.detector = detector
        self.capture = capture or pipeline.capture or ScreenCaptureService()
        if pipeline.capture is None:
            pipeline.capture = self.capture
        self.interval_s = interval_s

        self._in_flight = False
        self._generation = 0
        self._auto_task: Optional[asyncio.Task] = None
        self._callbacks: List[RecordCallback] = []
        self._error_callbacks: List[ErrorCallback] = []
        self.last_record: Optional[GearRecord] = None

        session.add_region_listener(self._on_region_changed)

    @classmethod
    def from_config(cls, config, session: OverlaySession, pipeline: GearPipeline,
                    capture: Optional[ScreenCaptureService] = None) -> "CaptureController":
        return cls(session, pipeline, ChangeDetector.from_config(config), capture, config.auto_interval_s)

    def add_callback(self, callback: RecordCallback) -> None:
        """Add callback receiving every emitted record."""
        self._callbacks.append(callback)

    def remove_callback(self, callback: RecordCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def add_error_callback(self, callback: ErrorCallback) -> None:
        """Add callback for failures of the auto-capture loop."""
        self._error_callbacks.append(callback)

    def remove_error_callback(self, callback: ErrorCallback) -> None:
        if callback in self._error_callbacks:
            self._error_callbacks.remove(callback)

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def is_auto_running(self) -> bool:
        return self._auto_task is not None and not self._auto_task.done()

    async def request_capture(self, reason: CaptureReason = CaptureReason.MANUAL,
                              image: Optional[np.ndarray] = None) -> Optional[GearRecord]:
        """Run the pipeline once on the current ROI.

        Returns None when another capture is already in flight or when an
        auto result arrives after auto capture was stopped. Manual requests
        propagate ``CaptureError``.
        """
        if self._in_flight:
            logger.debug(f"Capture in flight, dropping {reason.value} request")
            return None

        self._in_flight = True
        generation = self._generation
        region = self.session.snapshot()
        try:
            record = await self._run(reason, region, image)
        finally:
            self._in_flight = False

        if reason is CaptureReason.AUTO and generation != self._generation:
            logger.debug("Discarding result of a stopped auto-capture run")
            return None

        self.last_record = record
        self._notify(record)
        return record

    async def _run(self, reason: CaptureReason, region: Region, image: Optional[np.ndarray]) -> GearRecord:
        if reason is CaptureReason.AUTO:
            return await self.pipeline.on_stable_change_detected(region, image)
        if image is not None:
            return await self.pipeline.process_image(image, reason=reason, region=region)
        return await self.pipeline.snap_now(region)

    async def start_auto(self) -> None:
        if self.is_auto_running:
            return
        self._generation += 1
        self.detector.reset()
        self.session.auto_capture = True
        self._auto_task = asyncio.create_task(self._auto_loop(self._generation))
        logger.info(f"Auto capture started (every {self.interval_s:.2f}s)")

    async def stop_auto(self) -> None:
        self._generation += 1
        self.session.auto_capture = False
        self.detector.reset()

        task, self._auto_task = self._auto_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("Auto capture stopped")

    async def toggle_auto(self) -> bool:
        """Flip auto capture; returns the new state."""
        if self.is_auto_running:
            await self.stop_auto()
            return False
        await self.start_auto()
        return True

    async def _auto_loop(self, generation: int) -> None:
        while generation == self._generation:
            try:
                await self._tick(generation)
            except Exception as e:
                logger.exception(f"Auto capture tick failed: {e}")
                self._notify_error(e)
            await asyncio.sleep(self.interval_s)

    async def _tick(self, generation: int) -> None:
        if self.session.editing or self._in_flight:
            return

        region = self.session.snapshot()
        try:
            image = await self.capture.capture_region(region)
        except CaptureError as e:
            logger.warning(f"Auto capture skipped: {e}")
            self._notify_error(e)
            return

        if generation != self._generation:
            return
        if not await asyncio.to_thread(self.detector.observe, image):
            return

        logger.debug("Stable change detected")
        try:
            await self.request_capture(CaptureReason.AUTO, image=image)
        except (ApplicationError, ValidationError) as e:
            logger.error(f"Auto capture pipeline failed: {e}")
            self._notify_error(e)

    def _on_region_changed(self, region: Region) -> None:
        self.detector.reset()

    def _notify(self, record: GearRecord) -> None:
        for callback in list(self._callbacks):
            try:
                callback(record)
            except Exception as e:
                logger.error(f"Error in record callback: {e}")

    def _notify_error(self, error: Exception) -> None:
        for callback in list(self._error_callbacks):
            try:
                callback(error)
            except Exception as e:
                logger.error(f"Error in error callback: {e}")

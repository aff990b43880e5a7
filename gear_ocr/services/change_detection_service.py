"""Signature-based change detection for the auto-capture loop.

OCR is the expensive step, so each sampled frame is first reduced to a
single scalar signature. A capture is only triggered once the signature has
moved away from recent history and then held steady for a few samples,
which skips frames caught mid-animation.
"""

import logging
import statistics
import threading
from collections import deque
from typing import Optional, Sequence

import cv2
import numpy as np

from ..core.constants import SIGNATURE_WEIGHTS
from ..core.entities import ChangeState, Region, ZoneRatio
from ..utils.geometry import rect_from_ratio
from ..utils.image_utils import resize_to_width, to_bgr

logger = logging.getLogger(__name__)

_FULL_FRAME = (ZoneRatio(0.0, 0.0, 1.0, 1.0),)


def compute_signature(image: np.ndarray, zones: Optional[Sequence[ZoneRatio]] = None,
                      sample_width: int = 220) -> float:
    """Mean of ``3R + 4G + 2B`` over every other pixel of the given zones.

    The image is first downsampled to ``sample_width`` (aspect preserved).
    Only the listed zones are sampled so that animated backgrounds elsewhere
    in the panel do not register as changes. The result lies in 0..2295.
    """
    if image is None or image.size == 0:
        return 0.0

    small = to_bgr(image)
    if small.shape[1] > sample_width:
        small = resize_to_width(small, sample_width, interpolation=cv2.INTER_AREA)

    h, w = small.shape[:2]
    parent = Region(0, 0, w, h)
    wb, wg, wr = SIGNATURE_WEIGHTS[2], SIGNATURE_WEIGHTS[1], SIGNATURE_WEIGHTS[0]

    total = 0.0
    count = 0
    for zone in (zones or _FULL_FRAME):
        rect = rect_from_ratio(zone, parent)
        if rect.is_empty:
            continue
        samples = small[rect.y:rect.bottom:2, rect.x:rect.right:2].astype(np.float64)
        if samples.size == 0:
            continue
        weighted = samples[..., 0] * wb + samples[..., 1] * wg + samples[..., 2] * wr
        total += float(weighted.sum())
        count += weighted.size

    return total / count if count else 0.0


class ChangeDetector:
    """Decides when the watched region has changed and settled.

    Call :meth:`update` once per sampling tick. It returns True exactly once
    per stable change.
    """

    def __init__(self, threshold: float = 46.0, stable_frames: int = 2, history_size: int = 5,
                 zones: Optional[Sequence[ZoneRatio]] = None, sample_width: int = 220):
        if stable_frames < 1:
            raise ValueError("stable_frames must be >= 1")
        if history_size < 1:
            raise ValueError("history_size must be >= 1")
        self.threshold = float(threshold)
        self.stable_frames = int(stable_frames)
        self.zones = tuple(zones) if zones else _FULL_FRAME
        self.sample_width = sample_width
        self._state = ChangeState(signature_history=deque(maxlen=history_size))
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config) -> "ChangeDetector":
        return cls(
            threshold=config.change_threshold,
            stable_frames=config.stable_frames,
            history_size=config.signature_history_size,
            zones=config.get_signature_zones(),
            sample_width=config.signature_sample_width,
        )

    @property
    def state(self) -> ChangeState:
        return self._state

    def reset(self) -> None:
        """Forget all history (auto-capture toggled or ROI edited)."""
        with self._lock:
            self._state.reset()
        logger.debug("Change detector reset")

    def observe(self, image: np.ndarray) -> bool:
        """Compute the signature of ``image`` and feed it to :meth:`update`."""
        return self.update(compute_signature(image, self.zones, self.sample_width))

    def update(self, signature: float) -> bool:
        """Feed one signature; True when a settled change should trigger a capture."""
        with self._lock:
            return self._update(signature)

    def _update(self, signature: float) -> bool:
        state = self._state
        history = state.signature_history

        if not history:
            # No baseline yet: never a decision on the first sample
            history.append(signature)
            return False

        median = statistics.median(history)
        changed = abs(signature - median) > self.threshold
        if changed and state.last_captured_signature is not None:
            changed = abs(signature - state.last_captured_signature) > self.threshold

        if not changed:
            state.stable_streak = 0
            state.last_flagged_signature = None
            history.append(signature)
            return False

        # Consecutive flagged samples must agree with each other to count as settled
        if (state.last_flagged_signature is not None
                and abs(signature - state.last_flagged_signature) <= self.threshold):
            state.stable_streak += 1
        else:
            state.stable_streak = 1
        state.last_flagged_signature = signature
        history.append(signature)

        if state.stable_streak < self.stable_frames:
            logger.debug(f"Signature {signature:.1f} differs from median {median:.1f} "
                         f"(streak {state.stable_streak}/{self.stable_frames})")
            return False

        history.clear()
        history.append(signature)
        state.stable_streak = 0
        state.last_flagged_signature = None
        state.last_captured_signature = signature
        logger.info(f"Stable change detected (signature {signature:.1f}, previous median {median:.1f})")
        return True

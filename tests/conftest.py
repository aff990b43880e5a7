"""Pytest configuration and shared fixtures for the gear OCR overlay.

Provides synthetic capture buffers, a scripted OCR engine and a fake screen
capture provider so the pipeline can be exercised without Tesseract or a
display.
"""
import sys
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np
import pytest

# Add the project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from gear_ocr.config.settings import Config
from gear_ocr.core.entities import Display, OCRCandidate, Region, WordBox
from gear_ocr.core.exceptions import CaptureError


# Configure logging for tests
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)

# Disable some verbose loggers during testing
logging.getLogger('PIL').setLevel(logging.WARNING)


class FakeEngine:
    """OCR engine returning scripted candidates.

    ``responses`` maps a segmentation mode (or ``"digits"`` for whitelisted
    calls) to the candidate returned; unknown calls return an empty read.
    Every call is recorded in ``calls``.
    """

    def __init__(self, responses: Optional[Dict] = None, fail: bool = False):
        self.responses = dict(responses or {})
        self.fail = fail
        self.calls: List[tuple] = []

    def recognize(self, image, language="eng", segmentation_mode=6, char_whitelist=None):
        self.calls.append((image.shape, segmentation_mode, char_whitelist))
        if self.fail:
            raise RuntimeError("engine exploded")
        key = "digits" if char_whitelist else segmentation_mode
        response = self.responses.get(key)
        if callable(response):
            return response(image)
        return response or OCRCandidate.empty()


class FakeCapture:
    """Capture provider serving a queue of frames (the last one repeats)."""

    def __init__(self, frames: Sequence[np.ndarray] = (), fail: bool = False,
                 displays: Optional[List[Display]] = None):
        self.frames = list(frames)
        self.fail = fail
        self.requests: List[Region] = []
        self._displays = displays or [Display(id=1, bounds=Region(0, 0, 1920, 1080), is_primary=True)]

    def list_displays(self) -> List[Display]:
        return list(self._displays)

    def grab(self, region: Region) -> np.ndarray:
        self.requests.append(region)
        if self.fail:
            raise CaptureError("no capture source")
        if not self.frames:
            return np.zeros((region.height, region.width, 3), dtype=np.uint8)
        if len(self.frames) > 1:
            return self.frames.pop(0)
        return self.frames[0]

    async def capture_region(self, region: Region) -> np.ndarray:
        return self.grab(region)


def words_candidate(words: Sequence[WordBox], text: str = "", confidence: float = 0.9) -> OCRCandidate:
    return OCRCandidate(text=text or " ".join(w.text for w in words), confidence=confidence,
                        words=tuple(words), variant="psm6")


@pytest.fixture
def config():
    """Default configuration (no file, no environment)."""
    return Config()


@pytest.fixture
def displays():
    return [
        Display(id=1, bounds=Region(0, 0, 1920, 1080), is_primary=True),
        Display(id=2, bounds=Region(1920, 0, 1280, 1024)),
    ]


@pytest.fixture
def dark_tooltip():
    """A 560x720 dark tooltip-like BGR buffer."""
    image = np.full((720, 560, 3), 30, dtype=np.uint8)
    image[40:90, 40:500] = 200  # title bar text block
    return image


@pytest.fixture
def light_image():
    return np.full((200, 300, 3), 220, dtype=np.uint8)


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def fake_capture(dark_tooltip):
    return FakeCapture([dark_tooltip])


@pytest.fixture
def engine_factory():
    """The scripted engine class, for tests that need custom responses."""
    return FakeEngine


@pytest.fixture
def capture_factory():
    return FakeCapture


@pytest.fixture
def make_words_candidate():
    return words_candidate

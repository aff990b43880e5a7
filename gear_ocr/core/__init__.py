"""Core domain entities and constants."""

from .entities import (
    Region, Display, ZoneRatio, WordBox, OCRCandidate, PreprocessedImage,
    ExtractedZone, StatLine, GearRecord, ChangeState, CaptureReason, BBox
)
from .exceptions import ApplicationError, ConfigError, CaptureError, OcrError, ValidationError
from .constants import APP_NAME, VERSION, SUPPORTED_IMAGE_FORMATS

__all__ = [
    "Region", "Display", "ZoneRatio", "WordBox", "OCRCandidate", "PreprocessedImage",
    "ExtractedZone", "StatLine", "GearRecord", "ChangeState", "CaptureReason", "BBox",
    "ApplicationError", "ConfigError", "CaptureError", "OcrError", "ValidationError",
    "APP_NAME", "VERSION", "SUPPORTED_IMAGE_FORMATS"
]

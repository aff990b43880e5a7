"""Services package for the capture-to-record pipeline."""

from .capture_service import ScreenCaptureService
from .change_detection_service import ChangeDetector, compute_signature
from .zone_extractor import ZoneExtractor
from .preprocessing_service import ImagePreprocessor
from .ocr_service import OcrService, TesseractEngine
from .label_canonicalizer import LabelCanonicalizer, canonicalize
from .record_reconstructor import RecordReconstructor
from .gear_pipeline import GearPipeline
from .overlay_session import OverlaySession
from .capture_controller import CaptureController

__all__ = [
    "ScreenCaptureService", "ChangeDetector", "compute_signature",
    "ZoneExtractor", "ImagePreprocessor", "OcrService", "TesseractEngine",
    "LabelCanonicalizer", "canonicalize", "RecordReconstructor",
    "GearPipeline", "OverlaySession", "CaptureController"
]

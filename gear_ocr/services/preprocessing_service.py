"""Per-zone image preprocessing for OCR.

Two pipelines are kept separate on purpose. Label text keeps its
anti-aliased edges because the recognizer's language model leans on glyph
shape. Digits have no language model to fall back on, so they are
binarized several ways and the OCR scorer picks the variant that yields the
most digits.
"""

import logging
from typing import List

import numpy as np

from ..core.entities import PreprocessedImage
from ..utils.image_utils import (
    to_grayscale, invert, mean_brightness, scale_image, adjust_gamma, sharpen, threshold
)

logger = logging.getLogger(__name__)


class ImagePreprocessor:
    """Deterministic, side-effect free preprocessing for label and digit zones."""

    def __init__(self, dark_ui_threshold: int = 110, min_ocr_width: int = 600, max_upscale: float = 4.0,
                 label_gamma: float = 0.8, sharpen_amount: float = 0.6,
                 digit_threshold: int = 150, digit_threshold_alt: int = 110):
        self.dark_ui_threshold = dark_ui_threshold
        self.min_ocr_width = min_ocr_width
        self.max_upscale = max_upscale
        self.label_gamma = label_gamma
        self.sharpen_amount = sharpen_amount
        self.digit_threshold = digit_threshold
        self.digit_threshold_alt = digit_threshold_alt

    @classmethod
    def from_config(cls, config) -> "ImagePreprocessor":
        return cls(
            dark_ui_threshold=config.dark_ui_threshold,
            min_ocr_width=config.min_ocr_width,
            max_upscale=config.max_upscale,
            label_gamma=config.label_gamma,
            sharpen_amount=config.sharpen_amount,
            digit_threshold=config.digit_threshold,
            digit_threshold_alt=config.digit_threshold_alt,
        )

    def upscale_factor(self, width: int) -> float:
        """Factor needed to bring ``width`` up to the OCR width floor."""
        if width <= 0 or width >= self.min_ocr_width:
            return 1.0
        return min(self.max_upscale, self.min_ocr_width / float(width))

    def normalize(self, image: np.ndarray) -> PreprocessedImage:
        """Grayscale, dark-on-light and upscaled: the steps both pipelines share."""
        gray = to_grayscale(image)
        if mean_brightness(gray) < self.dark_ui_threshold:
            gray = invert(gray)

        factor = self.upscale_factor(gray.shape[1])
        if factor != 1.0:
            gray = scale_image(gray, factor)
        return PreprocessedImage(variant="normalized", image=gray, scale=factor)

    def prepare_label(self, image: np.ndarray) -> PreprocessedImage:
        """Label pipeline: no binarization, mild gamma and sharpen."""
        base = self.normalize(image)
        out = adjust_gamma(base.image, self.label_gamma)
        out = sharpen(out, self.sharpen_amount)
        return PreprocessedImage(variant="label", image=out, scale=base.scale)

    def prepare_digits(self, image: np.ndarray) -> List[PreprocessedImage]:
        """Digit pipeline: three binarized candidates scored downstream."""
        base = self.normalize(image)
        gray = base.image
        return [
            PreprocessedImage(variant="threshold", image=threshold(gray, self.digit_threshold), scale=base.scale),
            PreprocessedImage(variant="inverted", image=threshold(invert(gray), self.digit_threshold),
                              scale=base.scale),
            PreprocessedImage(variant="threshold_alt", image=threshold(gray, self.digit_threshold_alt),
                              scale=base.scale),
        ]

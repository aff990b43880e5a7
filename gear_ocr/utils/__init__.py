"""Utility functions package."""

from .geometry import (
    clamp_region, rect_from_ratio, display_containing, clamp_to_displays,
    contains, union_region
)
from .image_utils import (
    resize_to_width, crop_image, to_grayscale, invert, threshold,
    adjust_gamma, sharpen, sample_average_color
)

__all__ = [
    "clamp_region", "rect_from_ratio", "display_containing", "clamp_to_displays",
    "contains", "union_region", "resize_to_width", "crop_image",
    "to_grayscale", "invert", "threshold", "adjust_gamma", "sharpen", "sample_average_color"
]

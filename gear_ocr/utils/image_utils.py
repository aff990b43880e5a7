"""Image processing primitives.

All functions are pure: they return new arrays and never write into their
input, so a captured buffer can be shared between pipeline stages.
"""

import cv2
import numpy as np
from typing import Tuple, Optional

from ..core.entities import Region


def resize_to_width(image: np.ndarray, width: int, interpolation: int = cv2.INTER_AREA) -> np.ndarray:
    """Resize to an exact width, preserving aspect ratio."""
    h, w = image.shape[:2]
    if w == width:
        return image.copy()
    new_h = max(1, int(round(h * width / float(w))))
    return cv2.resize(image, (width, new_h), interpolation=interpolation)


def scale_image(image: np.ndarray, factor: float) -> np.ndarray:
    """Scale both axes by ``factor`` (cubic when enlarging)."""
    if factor == 1.0:
        return image.copy()
    interpolation = cv2.INTER_CUBIC if factor > 1.0 else cv2.INTER_AREA
    return cv2.resize(image, None, fx=factor, fy=factor, interpolation=interpolation)


def crop_image(image: np.ndarray, rect: Region) -> np.ndarray:
    """Crop to ``rect`` (clamped to the image); returns a copy, possibly empty."""
    h, w = image.shape[:2]

    x1 = max(0, min(rect.x, w))
    y1 = max(0, min(rect.y, h))
    x2 = max(x1, min(rect.right, w))
    y2 = max(y1, min(rect.bottom, h))

    return image[y1:y2, x1:x2].copy()


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """BGR/BGRA to single-channel; grayscale input is copied."""
    if image.ndim == 2:
        return image.copy()
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def to_bgr(image: np.ndarray) -> np.ndarray:
    """Normalise a capture to 3-channel BGR."""
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image.copy()


def invert(image: np.ndarray) -> np.ndarray:
    return cv2.bitwise_not(image)


def mean_brightness(image: np.ndarray) -> float:
    if image.size == 0:
        return 0.0
    return float(np.mean(to_grayscale(image)))


def threshold(gray: np.ndarray, cutoff: int) -> np.ndarray:
    """Binary threshold: pixels above ``cutoff`` become white."""
    _, binary = cv2.threshold(gray, cutoff, 255, cv2.THRESH_BINARY)
    return binary


def adjust_gamma(gray: np.ndarray, gamma: float) -> np.ndarray:
    """Gamma correction through a lookup table (gamma < 1 darkens mid-tones)."""
    table = np.array([((i / 255.0) ** (1.0 / gamma)) * 255 for i in range(256)]).clip(0, 255).astype(np.uint8)
    return cv2.LUT(gray, table)


def sharpen(gray: np.ndarray, amount: float = 0.6, sigma: float = 1.0) -> np.ndarray:
    """Unsharp mask."""
    if amount <= 0:
        return gray.copy()
    blurred = cv2.GaussianBlur(gray, (0, 0), sigma)
    return cv2.addWeighted(gray, 1.0 + amount, blurred, -amount, 0)


def sample_average_color(image: np.ndarray, bbox: Tuple[int, int, int, int]) -> Optional[Tuple[float, float, float]]:
    """Average (B, G, R) of the text pixels inside ``bbox`` = (x0, y0, x1, y1).

    Text pixels are the ones on the far side of the patch mean from the
    background: brighter ones on a dark patch, darker ones on a light patch.
    Returns None for an empty box.
    """
    h, w = image.shape[:2]
    x0, y0, x1, y1 = bbox
    x0, x1 = max(0, int(x0)), min(w, int(x1))
    y0, y1 = max(0, int(y0)), min(h, int(y1))
    if x1 <= x0 or y1 <= y0:
        return None
    patch = image[y0:y1, x0:x1]
    if patch.ndim == 2:
        patch = cv2.cvtColor(patch, cv2.COLOR_GRAY2BGR)
    pixels = patch.reshape(-1, patch.shape[2])[:, :3].astype(np.float64)

    luminance = pixels.mean(axis=1)
    mean = luminance.mean()
    ink = pixels[luminance > mean] if mean < 128 else pixels[luminance < mean]
    if len(ink) == 0:
        ink = pixels
    b, g, r = ink.mean(axis=0)
    return (float(b), float(g), float(r))

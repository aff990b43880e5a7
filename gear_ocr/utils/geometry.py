"""Region geometry: clamping, ratio-to-pixel mapping and display lookup."""

from typing import Sequence, Tuple

from ..core.entities import Region, Display, ZoneRatio
from ..core.exceptions import ConfigError


def _clamp_span(start: int, length: int, lo: int, hi: int, min_len: int) -> Tuple[int, int]:
    """Clamp the 1-D span [start, start+length) into [lo, hi).

    The span is first intersected with the bounds. If what is left is shorter
    than ``min_len`` it grows inward from the clamped edge.
    """
    min_len = max(0, min(min_len, hi - lo))
    end = start + length
    s = max(start, lo)
    e = min(end, hi)

    if e - s < min_len:
        if s >= hi:
            s, e = hi - min_len, hi
        elif e <= lo:
            s, e = lo, lo + min_len
        elif end > hi:
            s = e - min_len
        else:
            e = s + min_len

        if e > hi:
            s -= e - hi
            e = hi
        if s < lo:
            e += lo - s
            s = lo

    return s, e - s


def clamp_region(rect: Region, display_bounds: Region, min_width: int = 80, min_height: int = 80) -> Region:
    """Shrink/shift ``rect`` so it lies inside ``display_bounds`` with at least the minimum size.

    Minimums larger than the display are capped at the display size. The
    operation is idempotent.
    """
    x, w = _clamp_span(int(round(rect.x)), int(round(rect.width)),
                       display_bounds.x, display_bounds.right, min_width)
    y, h = _clamp_span(int(round(rect.y)), int(round(rect.height)),
                       display_bounds.y, display_bounds.bottom, min_height)
    return Region(x=x, y=y, width=w, height=h)


def rect_from_ratio(ratio: ZoneRatio, parent: Region) -> Region:
    """Map a zone ratio onto ``parent``; the result never leaves the parent.

    An overhanging zone is shrunk rather than rejected, so the result may be
    empty (zero width or height).
    """
    pw, ph = max(0, parent.width), max(0, parent.height)
    left = min(max(int(round(ratio.left * pw)), 0), pw)
    top = min(max(int(round(ratio.top * ph)), 0), ph)
    width = min(max(int(round(ratio.w * pw)), 0), pw - left)
    height = min(max(int(round(ratio.h * ph)), 0), ph - top)
    return Region(x=parent.x + left, y=parent.y + top, width=width, height=height)


def _squared_distance(point: Tuple[float, float], bounds: Region) -> float:
    px, py = point
    dx = max(bounds.x - px, 0.0, px - bounds.right)
    dy = max(bounds.y - py, 0.0, py - bounds.bottom)
    return dx * dx + dy * dy


def display_containing(point: Tuple[float, float], displays: Sequence[Display]) -> Display:
    """Return the display containing ``point``, or the nearest one.

    Raises:
        ConfigError: when no displays are available
    """
    if not displays:
        raise ConfigError("No displays available")

    px, py = point
    for display in displays:
        b = display.bounds
        if b.x <= px < b.right and b.y <= py < b.bottom:
            return display

    return min(displays, key=lambda d: _squared_distance(point, d.bounds))


def clamp_to_displays(rect: Region, displays: Sequence[Display],
                      min_width: int = 80, min_height: int = 80) -> Region:
    """Clamp ``rect`` into the display that contains (or is nearest to) its centre."""
    display = display_containing(rect.center, displays)
    return clamp_region(rect, display.bounds, min_width, min_height)


def contains(outer: Region, inner: Region) -> bool:
    """True when ``inner`` lies fully inside ``outer``."""
    return (inner.x >= outer.x and inner.y >= outer.y
            and inner.right <= outer.right and inner.bottom <= outer.bottom)


def union_region(a: Region, b: Region) -> Region:
    """Bounding rectangle of two regions."""
    x0, y0 = min(a.x, b.x), min(a.y, b.y)
    x1, y1 = max(a.right, b.right), max(a.bottom, b.bottom)
    return Region(x=x0, y=y0, width=x1 - x0, height=y1 - y0)


def translate(rect: Region, dx: int, dy: int) -> Region:
    return Region(x=rect.x + dx, y=rect.y + dy, width=rect.width, height=rect.height)

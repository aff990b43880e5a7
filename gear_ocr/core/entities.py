"""Domain entities (data-only structures) used across services."""
from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, List, Any, Dict, Deque

import numpy as np

BBox = Tuple[int, int, int, int]  # (x0,y0,x1,y1)


class CaptureReason(Enum):
    """Where a capture request came from."""
    AUTO = "auto"
    MANUAL = "manual"


@dataclass(slots=True, frozen=True)
class Region:
    """Axis-aligned rectangle in absolute pixel coordinates."""
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    @property
    def area(self) -> int:
        return max(0, self.width) * max(0, self.height)

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Region":
        return cls(
            x=int(round(data["x"])),
            y=int(round(data["y"])),
            width=int(round(data["width"])),
            height=int(round(data["height"])),
        )


@dataclass(slots=True, frozen=True)
class Display:
    """One monitor as reported by the capture provider."""
    id: int
    bounds: Region
    is_primary: bool = False


@dataclass(slots=True, frozen=True)
class ZoneRatio:
    """Sub-rectangle of a captured region, as fractions of its width/height."""
    left: float
    top: float
    w: float
    h: float

    def __post_init__(self):
        for name in ("left", "top", "w", "h"):
            value = getattr(self, name)
            if not 0.0 <= float(value) <= 1.0:
                raise ValueError(f"ZoneRatio.{name} must be within [0, 1], got {value}")

    @classmethod
    def from_sequence(cls, values) -> "ZoneRatio":
        left, top, w, h = (float(v) for v in values)
        return cls(left=left, top=top, w=w, h=h)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.left, self.top, self.w, self.h)


@dataclass(slots=True, frozen=True)
class WordBox:
    """A single word reported by the OCR engine."""
    text: str
    bbox: BBox
    confidence: float  # 0..1

    @property
    def center_x(self) -> float:
        return (self.bbox[0] + self.bbox[2]) / 2.0

    @property
    def center_y(self) -> float:
        return (self.bbox[1] + self.bbox[3]) / 2.0

    @property
    def width(self) -> int:
        return self.bbox[2] - self.bbox[0]

    @property
    def height(self) -> int:
        return self.bbox[3] - self.bbox[1]

    @property
    def has_digit(self) -> bool:
        return any(ch.isdigit() for ch in self.text)


@dataclass(slots=True, frozen=True)
class OCRCandidate:
    """Result of one OCR invocation on one preprocessed buffer."""
    text: str
    confidence: float  # 0..1
    words: Tuple[WordBox, ...] = ()
    variant: str = ""

    @classmethod
    def empty(cls, variant: str = "") -> "OCRCandidate":
        return cls(text="", confidence=0.0, words=(), variant=variant)

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    @property
    def word_count(self) -> int:
        if self.words:
            return len(self.words)
        return len(self.text.split())

    @property
    def line_count(self) -> int:
        return len([line for line in self.text.splitlines() if line.strip()])

    @property
    def digit_count(self) -> int:
        return sum(1 for ch in self.text if ch.isdigit())


@dataclass(slots=True)
class PreprocessedImage:
    """One preprocessor output. ``scale`` maps OCR coordinates back to the zone crop."""
    variant: str
    image: Any  # numpy ndarray (grayscale)
    scale: float = 1.0


@dataclass(slots=True)
class ExtractedZone:
    """A named crop of the captured ROI."""
    name: str
    rect: Region
    image: Any  # numpy ndarray (BGR)


@dataclass(slots=True, frozen=True)
class StatLine:
    label: str
    base: Optional[float]
    upgrade: float = 0.0
    unit: str = ""  # '%' or ''
    y_position: float = 0.0
    confidence: float = 0.0
    raw_label: str = ""
    raw_value: str = ""

    def __post_init__(self):
        if self.unit == "%" and self.base is not None and not 0.0 <= self.base <= 100.0:
            raise ValueError(f"Percent stat '{self.label}' out of range: {self.base}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "base": self.base,
            "upgrade": self.upgrade,
            "unit": self.unit,
            "y_position": self.y_position,
            "confidence": round(self.confidence, 3),
        }


@dataclass(slots=True)
class GearRecord:
    """Structured gear stats reconstructed from one capture."""
    title: str = ""
    type: str = ""
    main_stats: List[StatLine] = field(default_factory=list)
    substats: List[StatLine] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)
    level: int = 0
    set_name: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.title or self.type or self.main_stats or self.substats)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "type": self.type,
            "level": self.level,
            "set_name": self.set_name,
            "main_stats": [s.to_dict() for s in self.main_stats],
            "substats": [s.to_dict() for s in self.substats],
            "meta": dict(self.meta),
        }


@dataclass(slots=True)
class ChangeState:
    """Mutable state of the change detector, reset on toggle or ROI edit."""
    signature_history: Deque[float] = field(default_factory=lambda: deque(maxlen=5))
    stable_streak: int = 0
    last_captured_signature: Optional[float] = None
    last_flagged_signature: Optional[float] = None

    def reset(self) -> None:
        self.signature_history.clear()
        self.stable_streak = 0
        self.last_captured_signature = None
        self.last_flagged_signature = None


def orientation_of(image: np.ndarray) -> str:
    """'portrait' when the capture is at least as tall as it is wide."""
    h, w = image.shape[:2]
    return "portrait" if h >= w else "landscape"

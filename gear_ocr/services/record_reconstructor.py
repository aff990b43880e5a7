"""Rebuild structured gear records from noisy OCR output.

Two entry points share the same stat-line and assembly rules:

- :meth:`RecordReconstructor.reconstruct_from_words` works on positioned
  word boxes from the stats zone and can tell base from upgrade values by
  sampling their colour in the original capture.
- :meth:`RecordReconstructor.reconstruct_from_text` pairs plain label lines
  with plain digit lines when no usable word boxes were produced.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from ..core.constants import PERCENT_UNIT
from ..core.entities import GearRecord, StatLine, WordBox
from ..utils.image_utils import sample_average_color
from .label_canonicalizer import (
    LabelCanonicalizer, canonicalize_slot, is_main_stat, is_percent_label
)

logger = logging.getLogger(__name__)

ColorClassifier = Callable[[Tuple[float, float, float]], bool]

# OCR letter/digit confusions inside numeric tokens
_CHAR_FIXES = str.maketrans({"O": "0", "o": "0", "S": "5", "s": "5", "B": "8",
                             "I": "1", "l": "1", "Z": "2", "z": "2"})
_SPLIT_DECIMAL_RE = re.compile(r"(\d)\s+(\d%)")
_NUMBER_RE = re.compile(r"\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?")
_LEVEL_LINE_RE = re.compile(r"\blevel\s*\d+", re.IGNORECASE)
_GEAR_LEVEL_RE = re.compile(r"^\+\s*(\d+)\s*(.*)$")
_SET_RE = re.compile(r"\s*\bset\b\s*:?", re.IGNORECASE)
_SLOT_RE = re.compile(r"\s*\bslot\b\s*:?", re.IGNORECASE)
_NUMERIC_CHARS = set("0123456789+-.,%")

_PERCENT_VARIANTS = {"HP": "HP%", "Attack": "ATK%", "Defense": "DEF%"}


@dataclass(slots=True, frozen=True)
class ParsedValue:
    value: float
    unit: str
    raw: str
    plus_prefixed: bool = False


def repair_numeric_text(text: str) -> str:
    """Fix letter-for-digit misreads and a decimal point lost as a space ('3 5%')."""
    fixed = (text or "").strip().translate(_CHAR_FIXES)
    return _SPLIT_DECIMAL_RE.sub(r"\1.\2", fixed)


def parse_numeric(text: str) -> Optional[ParsedValue]:
    """First number in ``text`` with its unit; None when there is no digit or it overflows a float."""
    fixed = repair_numeric_text(text)
    match = _NUMBER_RE.search(fixed)
    if not match:
        return None
    raw = match.group(0).replace(",", "")
    value = float(raw)
    if not math.isfinite(value):
        return None
    return ParsedValue(
        value=value,
        unit=PERCENT_UNIT if PERCENT_UNIT in fixed else "",
        raw=raw,
        plus_prefixed=fixed.startswith("+"),
    )


def fix_percent(value: float, raw: str) -> float:
    """Restore a decimal point OCR dropped from a percentage.

    Values above 100 are divided by ten until they fit. A raw token without a
    decimal point that reads 50 or more is divided once unless it is a whole
    multiple of ten ('40%' stays 40). This is a heuristic tuned to one game's
    stat ranges: '66' could be a genuine 66%.
    """
    if not math.isfinite(value):
        return 0.0 if math.isnan(value) or value < 0 else 100.0
    while value > 100:
        value /= 10.0
    if "." not in raw and value >= 50 and value % 10 != 0:
        value /= 10.0
    return round(min(max(value, 0.0), 100.0), 2)


def is_upgrade_color(bgr: Tuple[float, float, float], margin: float = 30, min_blue: float = 80) -> bool:
    """Upgrade values render blue; base values white or gray."""
    b, g, r = bgr
    return b - max(r, g) > margin and b > min_blue


def group_lines(words: Sequence[WordBox], tolerance: float = 18) -> List[List[WordBox]]:
    """Group words into lines by vertical centre, each line sorted left to right."""
    groups: List[List[WordBox]] = []
    centers: List[float] = []
    for word in sorted(words, key=lambda w: w.center_y):
        if groups and abs(word.center_y - centers[-1]) <= tolerance:
            groups[-1].append(word)
            centers[-1] = sum(w.center_y for w in groups[-1]) / len(groups[-1])
        else:
            groups.append([word])
            centers.append(word.center_y)
    return [sorted(group, key=lambda w: w.bbox[0]) for group in groups]


def merge_adjacent_tokens(tokens: Sequence[WordBox], max_gap: float = 8) -> List[WordBox]:
    """Join tokens the OCR engine split apart ('12' + '%')."""
    merged: List[WordBox] = []
    for token in sorted(tokens, key=lambda w: w.bbox[0]):
        if merged and token.bbox[0] - merged[-1].bbox[2] < max_gap:
            prev = merged[-1]
            merged[-1] = WordBox(
                text=prev.text + token.text,
                bbox=(min(prev.bbox[0], token.bbox[0]), min(prev.bbox[1], token.bbox[1]),
                      max(prev.bbox[2], token.bbox[2]), max(prev.bbox[3], token.bbox[3])),
                confidence=(prev.confidence + token.confidence) / 2.0,
            )
        else:
            merged.append(token)
    return merged


def _is_numeric_like(word: WordBox) -> bool:
    return word.has_digit or (bool(word.text) and all(ch in _NUMERIC_CHARS for ch in word.text))


def _line_center(line: Sequence[WordBox]) -> float:
    return sum(w.center_y for w in line) / len(line)


class RecordReconstructor:
    """Turns OCR reads into :class:`GearRecord` objects."""

    def __init__(self, canonicalizer: Optional[LabelCanonicalizer] = None,
                 color_classifier: Optional[ColorClassifier] = None,
                 line_tolerance: float = 18, row_tolerance: float = 14, merge_gap: float = 8,
                 label_window: float = 420, min_token_confidence: float = 0.35,
                 min_token_height: int = 6, max_main_stats: int = 1,
                 percent_repair: bool = True):
        self.canonicalizer = canonicalizer or LabelCanonicalizer()
        self.color_classifier = color_classifier or is_upgrade_color
        self.line_tolerance = line_tolerance
        self.row_tolerance = row_tolerance
        self.merge_gap = merge_gap
        self.label_window = label_window
        self.min_token_confidence = min_token_confidence
        self.min_token_height = min_token_height
        self.max_main_stats = max_main_stats
        self.percent_repair = percent_repair

    @classmethod
    def from_config(cls, config, canonicalizer: Optional[LabelCanonicalizer] = None,
                    color_classifier: Optional[ColorClassifier] = None) -> "RecordReconstructor":
        if color_classifier is None:
            margin, min_blue = config.upgrade_blue_margin, config.upgrade_blue_min
            color_classifier = lambda bgr: is_upgrade_color(bgr, margin, min_blue)
        return cls(
            canonicalizer=canonicalizer or LabelCanonicalizer.from_config(config),
            color_classifier=color_classifier,
            line_tolerance=config.line_tolerance_px,
            row_tolerance=config.row_tolerance_px,
            merge_gap=config.merge_gap_px,
            label_window=config.label_window_px,
            min_token_confidence=config.min_token_confidence,
            min_token_height=config.min_token_height_px,
            max_main_stats=config.max_main_stats,
            percent_repair=config.percent_repair_enabled,
        )

    # ------------------------------------------------------------------
    # Word-box path
    # ------------------------------------------------------------------

    def select_numeric_tokens(self, line: Sequence[WordBox], cutoff_x: float) -> List[WordBox]:
        """Digit-bearing tokens in the numeric column, adjacent fragments merged.

        Low-confidence or tiny tokens are dropped, unless that would leave
        the line without any digit evidence.
        """
        column = [w for w in line if w.center_x >= cutoff_x and _is_numeric_like(w)]
        merged = [w for w in merge_adjacent_tokens(column, self.merge_gap) if w.has_digit]
        strict = [w for w in merged
                  if w.confidence >= self.min_token_confidence and w.height >= self.min_token_height]
        return strict or merged

    def _label_words(self, line: Sequence[WordBox], first_x: float) -> List[str]:
        return [w.text for w in line
                if not w.has_digit
                and any(ch.isalpha() for ch in w.text)
                and first_x - self.label_window <= w.center_x < first_x]

    def extract_label(self, line: Sequence[WordBox], first_x: float,
                      neighbours: Sequence[Sequence[WordBox]] = ()) -> str:
        """Raw label text left of ``first_x``, borrowed from a neighbouring row when missing."""
        words = self._label_words(line, first_x)
        if not words and line:
            center = _line_center(line)
            for other in neighbours:
                if other is line or not other:
                    continue
                if abs(_line_center(other) - center) <= self.row_tolerance:
                    words = self._label_words(other, first_x)
                    if words:
                        break
        return " ".join(words)

    def resolve_base_upgrade(self, tokens: Sequence[WordBox],
                             image: Optional[np.ndarray] = None) -> Tuple[Optional[WordBox], Optional[WordBox]]:
        """Split a line's numeric tokens into (base, upgrade).

        With two or more tokens only the two rightmost are considered. A
        token is the upgrade if its pixels are blue; without an image, a '+'
        prefix marks the upgrade. When neither token qualifies the rightmost
        is the base and the other is discarded.
        """
        if not tokens:
            return None, None
        if len(tokens) == 1:
            return tokens[0], None

        left, right = sorted(tokens, key=lambda w: w.bbox[0])[-2:]
        left_up, right_up = self._is_upgrade(left, image), self._is_upgrade(right, image)

        if right_up and not left_up:
            return left, right
        if left_up and not right_up:
            return right, left
        if left_up and right_up:
            return left, right
        return right, None

    def _is_upgrade(self, token: WordBox, image: Optional[np.ndarray]) -> bool:
        if image is None:
            return token.text.lstrip().startswith("+")
        color = sample_average_color(image, token.bbox)
        if color is None:
            return token.text.lstrip().startswith("+")
        return self.color_classifier(color)

    def reconstruct_from_words(self, words: Sequence[WordBox], image: Optional[np.ndarray] = None,
                               cutoff_x: float = 0, header_lines: Sequence[str] = (),
                               meta: Optional[dict] = None) -> GearRecord:
        """Record from positioned word boxes of the stats zone.

        ``image`` is the original (non-binarized) stats crop in the same
        coordinate space as ``words``; it is used for colour sampling only.
        """
        lines = group_lines(words, self.line_tolerance)
        stat_lines: List[StatLine] = []

        for line in lines:
            tokens = self.select_numeric_tokens(line, cutoff_x)
            if not tokens:
                continue

            first_x = min(t.bbox[0] for t in tokens)
            raw_label = self.extract_label(line, first_x, lines)
            base, upgrade = self.resolve_base_upgrade(tokens, image)
            stat = self.build_stat_line(
                raw_label,
                base.text if base else "",
                upgrade.text if upgrade else "",
                y_position=_line_center(line),
                confidence=base.confidence if base else 0.0,
            )
            if stat is not None:
                stat_lines.append(stat)

        meta = {**(meta or {}), "source": "words"}
        return self.assemble_record(header_lines, stat_lines, meta)

    # ------------------------------------------------------------------
    # Text path
    # ------------------------------------------------------------------

    def reconstruct_from_text(self, label_text: str, digits_text: str, header_text: str = "",
                              meta: Optional[dict] = None) -> GearRecord:
        """Record from a label-column read and a digit-column read, paired line by line.

        Label lines before the first recognisable stat are header lines
        (title, type, set). Every later label line occupies one digit line,
        even if it is dropped for an unknown label, so the pairing stays
        aligned.
        """
        header = [line.strip() for line in (header_text or "").splitlines() if line.strip()]
        slots: List[Tuple[str, str]] = []  # (raw label, inline value text)

        for line in (label_text or "").splitlines():
            line = line.strip()
            if not line or _LEVEL_LINE_RE.search(line):
                continue
            label_part, inline_value = _split_label_value(line)
            if not slots and self.canonicalizer.canonicalize(label_part) is None:
                header.append(line)
                continue
            slots.append((label_part, inline_value))

        digit_lines = [line.strip() for line in (digits_text or "").splitlines()
                       if any(ch.isdigit() for ch in line)]
        digit_lines = self._trim_surplus_digit_lines(digit_lines, len(slots), header)

        stat_lines: List[StatLine] = []
        for index, (raw_label, inline_value) in enumerate(slots):
            value_text = digit_lines[index] if index < len(digit_lines) else inline_value
            if inline_value and PERCENT_UNIT in inline_value and PERCENT_UNIT not in value_text:
                value_text += PERCENT_UNIT

            base_text, upgrade_text = _split_value_tokens(repair_numeric_text(value_text).split())
            stat = self.build_stat_line(raw_label, base_text, upgrade_text, y_position=float(index),
                                        confidence=1.0)
            if stat is not None:
                stat_lines.append(stat)

        meta = {**(meta or {}), "source": "text"}
        return self.assemble_record(header, stat_lines, meta)

    def _trim_surplus_digit_lines(self, digit_lines: List[str], slot_count: int,
                                  header: Sequence[str]) -> List[str]:
        """Drop leading digit lines that belong to the header (gear level, required level)."""
        if len(digit_lines) <= slot_count:
            return digit_lines

        level = _header_level(header)
        if level is not None and digit_lines and digit_lines[0].lstrip("+").startswith(str(level)):
            digit_lines = digit_lines[1:]
        while len(digit_lines) > slot_count:
            digit_lines = digit_lines[1:]
        return digit_lines

    # ------------------------------------------------------------------
    # Shared rules
    # ------------------------------------------------------------------

    def build_stat_line(self, raw_label: str, base_text: str, upgrade_text: str = "",
                        y_position: float = 0.0, confidence: float = 0.0) -> Optional[StatLine]:
        """Canonicalize the label and parse/repair the values; None drops the line."""
        label = self.canonicalizer.canonicalize(raw_label)
        if label is None:
            logger.debug(f"Dropping line with unrecognised label {raw_label!r}")
            return None

        base = parse_numeric(base_text)
        if base is None:
            logger.debug(f"Dropping '{label}': no numeric value in {base_text!r}")
            return None
        upgrade = parse_numeric(upgrade_text) if upgrade_text else None

        unit = base.unit
        if unit == PERCENT_UNIT and label in _PERCENT_VARIANTS:
            label = _PERCENT_VARIANTS[label]
        if is_percent_label(label):
            unit = PERCENT_UNIT

        base_value = base.value
        upgrade_value = upgrade.value if upgrade else 0.0
        if unit == PERCENT_UNIT:
            base_value = self._percent(base_value, base.raw)
            if upgrade:
                upgrade_value = self._percent(upgrade_value, upgrade.raw)

        return StatLine(
            label=label,
            base=base_value,
            upgrade=upgrade_value,
            unit=unit,
            y_position=y_position,
            confidence=confidence,
            raw_label=raw_label,
            raw_value=" ".join(t for t in (base_text, upgrade_text) if t),
        )

    def _percent(self, value: float, raw: str) -> float:
        if self.percent_repair:
            return fix_percent(value, raw)
        return min(max(value, 0.0), 100.0)

    def assemble_record(self, header_lines: Sequence[str], stat_lines: Sequence[StatLine],
                        meta: Optional[dict] = None) -> GearRecord:
        """Split stat lines into main stats and substats and parse the header."""
        ordered = sorted(stat_lines, key=lambda s: s.y_position)

        main_idx = [i for i, s in enumerate(ordered) if is_main_stat(s.label)][:self.max_main_stats]
        if not main_idx and ordered:
            main_idx = list(range(min(self.max_main_stats, len(ordered))))

        main_stats = [ordered[i] for i in main_idx]
        substats = [s for i, s in enumerate(ordered) if i not in main_idx]

        title, gear_type, level, set_name = parse_header(header_lines)
        record = GearRecord(
            title=title,
            type=gear_type,
            main_stats=main_stats,
            substats=substats,
            meta=dict(meta or {}),
            level=level,
            set_name=set_name,
        )
        logger.debug(f"Assembled record: title={title!r} type={gear_type!r} "
                     f"main={len(main_stats)} sub={len(substats)}")
        return record


def _split_label_value(line: str) -> Tuple[str, str]:
    """'Crit Rate 12.5%' -> ('Crit Rate', '12.5%'); '+' before a value belongs to it."""
    match = re.search(r"[+]?\s*\d", line)
    if not match:
        return line, ""
    return line[:match.start()].strip().rstrip(":-").strip(), line[match.start():].strip()


def _split_value_tokens(tokens: Sequence[str]) -> Tuple[str, str]:
    """(base, upgrade) from plain-text value tokens, '+' marks the upgrade."""
    tokens = [t for t in tokens if any(ch.isdigit() for ch in t)]
    if not tokens:
        return "", ""
    if len(tokens) == 1:
        return tokens[0], ""
    left, right = tokens[-2:]
    if right.startswith("+") and not left.startswith("+"):
        return left, right
    if left.startswith("+") and not right.startswith("+"):
        return right, left
    return right, ""


def _header_level(header: Sequence[str]) -> Optional[int]:
    for line in header:
        match = _GEAR_LEVEL_RE.match(line.strip())
        if match:
            return int(match.group(1))
    return None


def parse_header(lines: Sequence[str]) -> Tuple[str, str, int, str]:
    """(title, type, gear level, set name) from the title/type lines.

    Title and type are the first two non-numeric lines; a leading '+N' on
    the first line is the enhancement level. 'X Set' lines name the set and
    known slot words ('Gauntlets') are normalised to the slot name.
    """
    title, gear_type, set_name = "", "", ""
    level = 0

    for index, line in enumerate(l.strip() for l in lines):
        if not line or _LEVEL_LINE_RE.search(line):
            continue
        if index == 0 or not title:
            match = _GEAR_LEVEL_RE.match(line)
            if match:
                level = int(match.group(1))
                line = match.group(2).strip()
                if not line:
                    continue

        if _SET_RE.search(line):
            set_name = _SET_RE.sub(" ", line).strip()
            continue
        if _SLOT_RE.search(line):
            gear_type = gear_type or _SLOT_RE.sub(" ", line).strip()
            continue
        if any(ch.isdigit() for ch in line):
            continue

        slot = canonicalize_slot(line)
        if slot and title:
            gear_type = gear_type or slot
            continue

        if not title:
            title = line
        elif not gear_type:
            gear_type = line

    return title, gear_type, level, set_name

"""Map noisy OCR label strings onto the fixed stat vocabulary."""

import logging
import re
from typing import Dict, Iterable, Mapping, Optional, Tuple

from rapidfuzz.distance import Levenshtein

logger = logging.getLogger(__name__)

CANONICAL_LABELS: Tuple[str, ...] = (
    "HP", "HP%", "Attack", "ATK%", "Defense", "DEF%", "Crit Rate", "Crit Damage",
    "Accuracy", "Resistance", "Enlightenment", "Speed",
)

PERCENT_LABELS = frozenset({"HP%", "ATK%", "DEF%", "Crit Rate", "Crit Damage", "Accuracy", "Resistance"})
MAIN_STAT_LABELS = frozenset({"Crit Rate", "Crit Damage", "ATK%", "HP%", "DEF%", "Enlightenment"})
ELEMENTS = ("Fire", "Water", "Earth", "Light", "Dark")

DEFAULT_ALIASES: Dict[str, str] = {
    "hp": "HP", "health": "HP",
    "hp%": "HP%", "health%": "HP%",
    "atk": "Attack", "attack": "Attack",
    "atk%": "ATK%", "attack%": "ATK%",
    "def": "Defense", "defense": "Defense", "defence": "Defense",
    "def%": "DEF%", "defense%": "DEF%",
    "critrate": "Crit Rate", "criticalrate": "Crit Rate", "critchance": "Crit Rate", "crit": "Crit Rate",
    "critdamage": "Crit Damage", "criticaldamage": "Crit Damage", "critdmg": "Crit Damage",
    "acc": "Accuracy", "accuracy": "Accuracy",
    "res": "Resistance", "resist": "Resistance", "resistance": "Resistance",
    "enlight": "Enlightenment", "enlightenment": "Enlightenment",
    "spd": "Speed", "speed": "Speed",
    # misreads seen on the in-game font
    "obccuney": "Accuracy", "aceuracy": "Accuracy", "accuraey": "Accuracy",
    "cnitrate": "Crit Rate", "critrale": "Crit Rate",
    "cntdamage": "Crit Damage", "critdarnage": "Crit Damage",
    "resislance": "Resistance", "defensc": "Defense",
}

SLOT_SYNONYMS: Dict[str, str] = {
    "weapon": "Weapon", "sword": "Weapon", "axe": "Weapon", "bow": "Weapon",
    "dagger": "Weapon", "staff": "Weapon", "wand": "Weapon",
    "helmet": "Helmet", "helm": "Helmet", "head": "Helmet", "headgear": "Helmet",
    "armor": "Armor", "chest": "Armor", "chestplate": "Armor", "plate": "Armor",
    "boots": "Boots", "shoes": "Boots", "feet": "Boots",
    "gloves": "Gloves", "gauntlets": "Gloves", "hands": "Gloves",
    "ring": "Ring",
    "necklace": "Necklace", "amulet": "Necklace",
    "rune": "Rune",
    "artifact": "Artifact",
    "off hand": "Off Hand", "off-hand": "Off Hand",
    "main hand": "Main Hand", "main-hand": "Main Hand",
}

_KEY_RE = re.compile(r"[^a-z0-9%]")
_GLYPH_FOLD = str.maketrans({"0": "o", "1": "l", "5": "s", "8": "b"})


def normalize_key(text: str) -> str:
    """Lowercase and drop everything but letters, digits and '%'."""
    return _KEY_RE.sub("", (text or "").lower())


def is_percent_label(label: str) -> bool:
    return label in PERCENT_LABELS or label.endswith("%")


def is_main_stat(label: str) -> bool:
    """Labels allowed as main stats: the fixed set or any element-tagged label."""
    if label in MAIN_STAT_LABELS:
        return True
    first = label.split(" ", 1)[0] if label else ""
    return first in ELEMENTS


def canonicalize_slot(text: str) -> Optional[str]:
    """Gear slot name for a type line such as 'Gauntlets', else None."""
    key = re.sub(r"\s+", " ", (text or "").strip().lower())
    return SLOT_SYNONYMS.get(key)


class LabelCanonicalizer:
    """Alias lookup first, then bounded edit distance against the vocabulary."""

    def __init__(self, extra_labels: Iterable[str] = (), aliases: Optional[Mapping[str, str]] = None,
                 max_ratio: float = 0.34):
        self.labels: Tuple[str, ...] = tuple(dict.fromkeys([*CANONICAL_LABELS, *extra_labels]))
        self.aliases: Dict[str, str] = dict(DEFAULT_ALIASES if aliases is None else aliases)
        self.max_ratio = max_ratio

        # aliases are exact lookups only; edit distance is measured against canonical keys
        self._targets: Dict[str, str] = {}
        for label in self.labels:
            self._targets[normalize_key(label)] = label
            self.aliases.setdefault(normalize_key(label), label)

    @classmethod
    def from_config(cls, config) -> "LabelCanonicalizer":
        return cls(extra_labels=config.extra_stat_labels, max_ratio=config.fuzzy_max_ratio)

    def canonicalize(self, text: str) -> Optional[str]:
        """Canonical label for ``text``, or None when nothing is close enough."""
        key = normalize_key(text)
        if len(key) < 2:
            return None

        label = self.aliases.get(key)
        if label is not None:
            return label

        folded = key.translate(_GLYPH_FOLD)
        label = self.aliases.get(folded)
        if label is not None:
            return label

        best_label, best_ratio = None, None
        for target, candidate in self._targets.items():
            distance = Levenshtein.distance(folded, target)
            ratio = distance / max(len(folded), len(target))
            if best_ratio is None or ratio < best_ratio:
                best_label, best_ratio = candidate, ratio

        if best_ratio is not None and best_ratio <= self.max_ratio:
            logger.debug(f"Fuzzy label match {text!r} -> {best_label!r} (ratio {best_ratio:.2f})")
            return best_label

        logger.debug(f"No label match for {text!r}")
        return None


_default_canonicalizer = LabelCanonicalizer()


def canonicalize(text: str) -> Optional[str]:
    """Canonicalize with the default vocabulary."""
    return _default_canonicalizer.canonicalize(text)

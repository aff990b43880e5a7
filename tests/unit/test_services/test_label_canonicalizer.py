"""Unit tests for label canonicalization."""
import pytest

from gear_ocr.services.label_canonicalizer import (
    LabelCanonicalizer, canonicalize, canonicalize_slot, is_main_stat, is_percent_label, normalize_key
)


class TestCanonicalize:
    """Test suite for mapping OCR labels onto the stat vocabulary."""

    @pytest.mark.parametrize("text,expected", [
        ("Crit Rate", "Crit Rate"),
        ("CRIT DMG", "Crit Damage"),
        ("Critical Damage", "Crit Damage"),
        ("ATK %", "ATK%"),
        ("Atk", "Attack"),
        ("Def%", "DEF%"),
        ("Resist", "Resistance"),
        ("Enlightenment", "Enlightenment"),
        ("Spd", "Speed"),
    ])
    def test_known_labels(self, text, expected):
        assert canonicalize(text) == expected

    def test_observed_misread(self):
        assert canonicalize("Obccuney") == "Accuracy"

    @pytest.mark.parametrize("text,expected", [
        ("Accuracv", "Accuracy"),
        ("Resistanse", "Resistance"),
        ("Cr1t Rate", "Crit Rate"),
        ("Enllghtenment", "Enlightenment"),
    ])
    def test_fuzzy_matches(self, text, expected):
        assert canonicalize(text) == expected

    @pytest.mark.parametrize("text", ["xyz123", "", "|", "Gloves", "Platinum Knight Gloves"])
    def test_unmatched_labels(self, text):
        assert canonicalize(text) is None

    @pytest.mark.parametrize("text", ["Heart", "Helth"])
    def test_aliases_are_not_fuzzy_targets(self, text):
        # close to the alias "health" but too far from any canonical key
        assert canonicalize(text) is None

    def test_fuzzy_targets_are_canonical_keys(self):
        canonicalizer = LabelCanonicalizer()
        assert set(canonicalizer._targets) == {normalize_key(label) for label in canonicalizer.labels}

    def test_extra_labels_and_ratio_from_config(self, config):
        config.extra_stat_labels = ["Evasion"]
        canonicalizer = LabelCanonicalizer.from_config(config)

        assert canonicalizer.canonicalize("Evasi0n") == "Evasion"
        assert canonicalizer.max_ratio == config.fuzzy_max_ratio

    def test_stricter_ratio_rejects_more(self):
        strict = LabelCanonicalizer(max_ratio=0.05)
        assert strict.canonicalize("Accuracv") is None
        assert strict.canonicalize("accuracy") == "Accuracy"


class TestHelpers:
    def test_normalize_key(self):
        assert normalize_key("  Crit-Rate: ") == "critrate"
        assert normalize_key("HP %") == "hp%"

    def test_percent_labels(self):
        assert is_percent_label("Crit Rate")
        assert is_percent_label("HP%")
        assert not is_percent_label("HP")

    def test_main_stat_set(self):
        assert is_main_stat("ATK%")
        assert is_main_stat("Fire Damage")
        assert not is_main_stat("Accuracy")
        assert not is_main_stat("")

    def test_slot_synonyms(self):
        assert canonicalize_slot("Gauntlets") == "Gloves"
        assert canonicalize_slot("  Off   Hand ") == "Off Hand"
        assert canonicalize_slot("Platinum Knight Gloves") is None

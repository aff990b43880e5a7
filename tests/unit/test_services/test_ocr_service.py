"""Unit tests for the OCR adapter and candidate scoring."""
from unittest.mock import patch

import numpy as np
import pytest

from gear_ocr.core.entities import OCRCandidate, PreprocessedImage, WordBox
from gear_ocr.core.exceptions import OcrError
from gear_ocr.services.ocr_service import (
    OcrService, TesseractEngine, candidate_from_data, digit_score, label_score, rescale_candidate, select_best
)


def prepared(variant="label", scale=1.0):
    return PreprocessedImage(variant=variant, image=np.full((40, 200), 255, dtype=np.uint8), scale=scale)


class TestScoring:
    """Test suite for candidate scorers."""

    def test_digit_score_prefers_digits(self):
        best = select_best([OCRCandidate("", 0.0), OCRCandidate("12.5%", 0.4)], digit_score)
        assert best.text == "12.5%"

    def test_digit_score_formula(self):
        candidate = OCRCandidate("12\n34", 0.5)
        assert digit_score(candidate) == pytest.approx(4 * 10 + 2 + 5 * 0.02)

    def test_label_score_orders_by_confidence_then_words(self):
        low = OCRCandidate("Crit Rate Accuracy", 0.5)
        high = OCRCandidate("Crit", 0.9)
        assert select_best([low, high], label_score) is high

        same_conf = [OCRCandidate("Crit", 0.8), OCRCandidate("Crit Rate", 0.8)]
        assert select_best(same_conf, label_score).text == "Crit Rate"

    def test_ties_go_to_first(self):
        a, b = OCRCandidate("HP", 0.7, variant="a"), OCRCandidate("HP", 0.7, variant="b")
        assert select_best([a, b], label_score).variant == "a"

    def test_empty_input(self):
        assert select_best([], label_score).is_empty


class TestCandidateFromData:
    def test_builds_words_and_lines(self):
        data = {
            "text": ["", "Crit", "Rate", "12.5%", "noise"],
            "conf": ["-1", "91", "88", "75.5", "-1"],
            "left": [0, 10, 60, 300, 0],
            "top": [0, 20, 20, 22, 0],
            "width": [0, 40, 40, 50, 0],
            "height": [0, 16, 16, 15, 0],
            "block_num": [1, 1, 1, 1, 1],
            "par_num": [1, 1, 1, 1, 1],
            "line_num": [1, 1, 1, 2, 1],
        }

        candidate = candidate_from_data(data, "psm6")

        assert [w.text for w in candidate.words] == ["Crit", "Rate", "12.5%"]
        assert candidate.words[0].bbox == (10, 20, 50, 36)
        assert candidate.words[2].confidence == pytest.approx(0.755)
        assert candidate.text == "Crit Rate\n12.5%"
        assert candidate.confidence == pytest.approx((0.91 + 0.88 + 0.755) / 3)

    def test_empty_data(self):
        candidate = candidate_from_data({"text": []})
        assert candidate.is_empty
        assert candidate.confidence == 0.0


def test_rescale_candidate():
    candidate = OCRCandidate("12", 0.9, words=(WordBox("12", (100, 40, 140, 80), 0.9),))
    assert rescale_candidate(candidate, 2.0).words[0].bbox == (50, 20, 70, 40)
    assert rescale_candidate(candidate, 1.0) is candidate


class TestOcrService:
    """Test suite for OcrService with a scripted engine."""

    def test_engine_failure_becomes_empty_candidate(self, engine_factory):
        service = OcrService(engine_factory(fail=True))

        result = service.recognize_safe(prepared(), 7)

        assert result.is_empty
        assert result.variant == "label/psm7"

    def test_words_are_mapped_back_to_zone_coordinates(self, engine_factory):
        engine = engine_factory({6: OCRCandidate("40", 0.9, words=(WordBox("40", (400, 20, 440, 60), 0.9),))})
        service = OcrService(engine)

        result = service.recognize_safe(prepared(scale=4.0), 6)

        assert result.words[0].bbox == (100, 5, 110, 15)
        assert result.variant == "label/psm6"

    @pytest.mark.asyncio
    async def test_read_labels_picks_best_mode(self, engine_factory):
        engine = engine_factory({
            7: OCRCandidate("Crlt", 0.4),
            6: OCRCandidate("Crit Rate", 0.85),
        })
        service = OcrService(engine, label_psm_modes=(7, 6))

        best = await service.read_labels(prepared())

        assert best.text == "Crit Rate"
        assert [call[1] for call in engine.calls] == [7, 6]

    @pytest.mark.asyncio
    async def test_read_digits_uses_whitelist_and_digit_score(self, engine_factory):
        responses = iter([OCRCandidate("", 0.0), OCRCandidate("12.5%\n6.6%", 0.6), OCRCandidate("1", 0.9)])
        engine = engine_factory({"digits": lambda image: next(responses)})
        service = OcrService(engine)

        variants = [prepared("threshold"), prepared("inverted"), prepared("threshold_alt")]
        best = await service.read_digits(variants)

        assert best.text == "12.5%\n6.6%"
        assert best.variant == "inverted/psm6"
        assert all(call[2] == "0123456789+.,%" for call in engine.calls)

    @pytest.mark.asyncio
    async def test_read_words_survives_total_failure(self, engine_factory):
        service = OcrService(engine_factory(fail=True))
        best = await service.read_words(prepared())
        assert best.is_empty
        assert best.words == ()

    def test_from_config(self, config, fake_engine):
        service = OcrService.from_config(config, engine=fake_engine)

        assert service.engine is fake_engine
        assert service.label_psm_modes == (7, 6)
        assert service.digit_psm_mode == 6


class TestTesseractEngine:
    def test_builds_tesseract_config(self):
        data = {"text": ["HP"], "conf": ["90"], "left": [1], "top": [2], "width": [3], "height": [4]}
        with patch("gear_ocr.services.ocr_service.pytesseract.image_to_data", return_value=data) as mock_call:
            candidate = TesseractEngine().recognize(np.zeros((10, 10), dtype=np.uint8), "eng", 7, "0123")

        assert candidate.text == "HP"
        assert candidate.variant == "psm7"
        assert mock_call.call_args.kwargs["config"] == "--oem 3 --psm 7 -c tessedit_char_whitelist=0123"

    def test_tesseract_errors_wrapped(self):
        import pytesseract

        with patch("gear_ocr.services.ocr_service.pytesseract.image_to_data",
                   side_effect=pytesseract.TesseractNotFoundError()):
            with pytest.raises(OcrError):
                TesseractEngine().recognize(np.zeros((10, 10), dtype=np.uint8))

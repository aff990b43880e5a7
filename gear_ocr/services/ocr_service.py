"""OCR adapter around Tesseract plus candidate scoring.

Each zone is read several ways (page segmentation modes, threshold
variants) and the best candidate is picked by a task-specific score. OCR
failures never escape this module: a failed or empty read becomes an empty
candidate and the pipeline carries on with partial data.
"""

import asyncio
import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Any

import numpy as np
import pytesseract
from PIL import Image

from ..core.entities import OCRCandidate, PreprocessedImage, WordBox
from ..core.exceptions import OcrError

logger = logging.getLogger(__name__)


def label_score(candidate: OCRCandidate) -> Tuple[float, int, int]:
    """Confidence first, then word count, then text length."""
    return (candidate.confidence, candidate.word_count, len(candidate.text))


def digit_score(candidate: OCRCandidate) -> float:
    """Weighted toward how many digits were read."""
    return candidate.digit_count * 10 + candidate.line_count + len(candidate.text) * 0.02


def select_best(candidates: Iterable[OCRCandidate], key: Callable[[OCRCandidate], Any]) -> OCRCandidate:
    """Highest-scoring candidate; earlier candidates win ties."""
    best: Optional[OCRCandidate] = None
    best_score = None
    for candidate in candidates:
        score = key(candidate)
        if best is None or score > best_score:
            best, best_score = candidate, score
    return best if best is not None else OCRCandidate.empty()


def candidate_from_data(data: Dict[str, List[Any]], variant: str = "") -> OCRCandidate:
    """Build a candidate from ``pytesseract.image_to_data`` dict output."""
    words: List[WordBox] = []
    lines: Dict[Tuple[int, int, int], List[str]] = {}
    confidences: List[float] = []

    for i in range(len(data.get("text", []))):
        text = (data["text"][i] or "").strip()
        if not text:
            continue
        try:
            conf = float(data["conf"][i])
        except (TypeError, ValueError):
            conf = -1.0
        if conf < 0:
            continue

        x, y = int(data["left"][i]), int(data["top"][i])
        w, h = int(data["width"][i]), int(data["height"][i])
        words.append(WordBox(text=text, bbox=(x, y, x + w, y + h), confidence=conf / 100.0))
        confidences.append(conf / 100.0)

        key = tuple(int(data[name][i]) if name in data else 0
                    for name in ("block_num", "par_num", "line_num"))
        lines.setdefault(key, []).append(text)

    text = "\n".join(" ".join(parts) for parts in lines.values())
    confidence = sum(confidences) / len(confidences) if confidences else 0.0
    return OCRCandidate(text=text, confidence=confidence, words=tuple(words), variant=variant)


def rescale_candidate(candidate: OCRCandidate, scale: float) -> OCRCandidate:
    """Map word boxes from an upscaled OCR buffer back to zone coordinates."""
    if scale == 1.0 or not candidate.words:
        return candidate
    words = tuple(
        WordBox(
            text=w.text,
            bbox=tuple(int(round(v / scale)) for v in w.bbox),
            confidence=w.confidence,
        )
        for w in candidate.words
    )
    return OCRCandidate(text=candidate.text, confidence=candidate.confidence, words=words,
                        variant=candidate.variant)


class TesseractEngine:
    """Thin wrapper over ``pytesseract.image_to_data``."""

    def __init__(self, tesseract_cmd: Optional[str] = None, oem: int = 3):
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.oem = oem

    def recognize(self, image: np.ndarray, language: str = "eng", segmentation_mode: int = 6,
                  char_whitelist: Optional[str] = None) -> OCRCandidate:
        config = f"--oem {self.oem} --psm {segmentation_mode}"
        if char_whitelist:
            config += f" -c tessedit_char_whitelist={char_whitelist}"

        try:
            data = pytesseract.image_to_data(
                Image.fromarray(image),
                lang=language,
                config=config,
                output_type=pytesseract.Output.DICT,
            )
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
            raise OcrError(f"Tesseract failed (psm {segmentation_mode}): {e}") from e
        return candidate_from_data(data, variant=f"psm{segmentation_mode}")


class OcrService:
    """Runs the OCR engine over preprocessed zones and picks the best read."""

    def __init__(self, engine, language: str = "eng", label_psm_modes: Sequence[int] = (7, 6),
                 words_psm_modes: Sequence[int] = (6, 4), digit_psm_mode: int = 6,
                 digit_whitelist: str = "0123456789+.,%"):
        self.engine = engine
        self.language = language
        self.label_psm_modes = tuple(label_psm_modes)
        self.words_psm_modes = tuple(words_psm_modes)
        self.digit_psm_mode = digit_psm_mode
        self.digit_whitelist = digit_whitelist

    @classmethod
    def from_config(cls, config, engine=None) -> "OcrService":
        return cls(
            engine or TesseractEngine(config.tesseract_cmd or None),
            language=config.ocr_language,
            label_psm_modes=config.label_psm_modes,
            words_psm_modes=config.words_psm_modes,
            digit_psm_mode=config.digit_psm_mode,
            digit_whitelist=config.digit_whitelist,
        )

    def recognize_safe(self, prepared: PreprocessedImage, segmentation_mode: int,
                       char_whitelist: Optional[str] = None) -> OCRCandidate:
        """One OCR call; engine failures and empty reads become an empty candidate."""
        variant = f"{prepared.variant}/psm{segmentation_mode}"
        if prepared.image is None or prepared.image.size == 0:
            return OCRCandidate.empty(variant)
        try:
            raw = self.engine.recognize(prepared.image, self.language, segmentation_mode, char_whitelist)
        except Exception as e:
            logger.warning(f"OCR failed for {variant}: {e}")
            return OCRCandidate.empty(variant)
        if raw is None:
            return OCRCandidate.empty(variant)

        candidate = OCRCandidate(text=raw.text.strip(), confidence=raw.confidence, words=raw.words, variant=variant)
        return rescale_candidate(candidate, prepared.scale)

    async def _run(self, jobs: List[Tuple[PreprocessedImage, int, Optional[str]]]) -> List[OCRCandidate]:
        results = []
        for prepared, psm, whitelist in jobs:
            results.append(await asyncio.to_thread(self.recognize_safe, prepared, psm, whitelist))
        return results

    async def read_labels(self, prepared: PreprocessedImage) -> OCRCandidate:
        """Best label read across the label segmentation modes."""
        candidates = await self._run([(prepared, psm, None) for psm in self.label_psm_modes])
        best = select_best(candidates, label_score)
        logger.debug(f"Label read picked {best.variant!r}: {best.text!r} ({best.confidence:.2f})")
        return best

    async def read_words(self, prepared: PreprocessedImage) -> OCRCandidate:
        """Best word-box read for spatial reconstruction."""
        candidates = await self._run([(prepared, psm, None) for psm in self.words_psm_modes])
        best = select_best(candidates, label_score)
        logger.debug(f"Word read picked {best.variant!r} with {len(best.words)} words")
        return best

    async def read_digits(self, variants: Sequence[PreprocessedImage]) -> OCRCandidate:
        """Best digit read across the thresholded variants."""
        candidates = await self._run([(v, self.digit_psm_mode, self.digit_whitelist) for v in variants])
        best = select_best(candidates, digit_score)
        logger.debug(f"Digit read picked {best.variant!r}: {best.text!r}")
        return best

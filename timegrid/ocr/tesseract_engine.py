"""Tesseract OCR adapter for timetable images.

Returns the recognised text together with word-level boxes so the line
reconstructor can rebuild table rows that Tesseract emits out of order.
"""

from dataclasses import dataclass

import numpy as np
import pytesseract
from PIL import Image

from timegrid.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class BoundingBox:
    """Axis-aligned bounding box for a detected word."""

    x: int
    y: int
    width: int
    height: int


@dataclass
class OCRWord:
    """A single word recognised by OCR."""

    text: str
    bbox: BoundingBox
    confidence: float


@dataclass
class OCRResult:
    """OCR output for one image or page."""

    text: str
    words: list[OCRWord]
    confidence: float
    language: str = "eng"


class TesseractEngine:
    """Wrapper around pytesseract for timetable text extraction.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        default_lang: Default OCR language code.
        psm: Page segmentation mode. Mode 6 (single uniform block) keeps
            timetable rows together better than the automatic mode.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        default_lang: str = "eng",
        psm: int = 6,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.default_lang = default_lang
        self.psm = psm

    def extract_text(self, image: np.ndarray, lang: str | None = None) -> OCRResult:
        """Run OCR on an image.

        Args:
            image: Input image as a numpy array.
            lang: OCR language code. Defaults to the engine default.

        Returns:
            OCRResult with the full text, the confident words and their
            mean confidence in the 0..1 range.
        """
        lang = lang or self.default_lang
        config = f"--psm {self.psm}"
        pil_image = Image.fromarray(image)

        text = pytesseract.image_to_string(pil_image, lang=lang, config=config)
        data = pytesseract.image_to_data(
            pil_image,
            lang=lang,
            config=config,
            output_type=pytesseract.Output.DICT,
        )
        words = _words_from_data(data)

        confidence = (
            sum(w.confidence for w in words) / len(words) if words else 0.0
        )
        logger.info(
            "OCR extracted %d characters, %d words, confidence %.0f%%",
            len(text),
            len(words),
            confidence * 100,
        )
        return OCRResult(text=text, words=words, confidence=confidence, language=lang)


def _words_from_data(data: dict[str, list]) -> list[OCRWord]:
    """Build OCRWord objects from ``image_to_data`` output.

    Entries with empty text or non-positive confidence are layout rows
    rather than words and are skipped.
    """
    texts = data.get("text", [])

    words: list[OCRWord] = []
    for i, raw_text in enumerate(texts):
        word_text = str(raw_text).strip()
        conf = float(data["conf"][i])
        if conf <= 0 or not word_text:
            continue
        words.append(
            OCRWord(
                text=word_text,
                bbox=BoundingBox(
                    x=int(data["left"][i]),
                    y=int(data["top"][i]),
                    width=int(data["width"][i]),
                    height=int(data["height"][i]),
                ),
                confidence=conf / 100.0,
            )
        )
    return words

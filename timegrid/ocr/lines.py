"""Line reconstruction from OCR word boxes.

Tesseract often splits a timetable row across blocks, so rows are rebuilt
purely from vertical position: a word joins the current line while its top
edge stays within ``threshold`` pixels of the line's first word.
"""

from timegrid.utils.logger import get_logger

from .tesseract_engine import OCRWord

logger = get_logger(__name__)


def group_words_into_lines(words: list[OCRWord], threshold: int = 20) -> list[list[OCRWord]]:
    """Group OCR words into visual lines.

    Args:
        words: Words with bounding boxes.
        threshold: Maximum vertical distance in pixels between a word's top
            edge and the current line anchor.

    Returns:
        Lines from top to bottom, each ordered left to right.
    """
    if not words:
        return []

    ordered = sorted(words, key=lambda w: w.bbox.y)
    lines: list[list[OCRWord]] = []
    current: list[OCRWord] = []
    anchor_y = ordered[0].bbox.y

    for word in ordered:
        if abs(word.bbox.y - anchor_y) > threshold:
            if current:
                lines.append(current)
            current = []
            anchor_y = word.bbox.y
        current.append(word)

    if current:
        lines.append(current)

    lines = [sorted(line, key=lambda w: w.bbox.x) for line in lines]
    logger.debug("Reconstructed %d lines from %d words", len(lines), len(words))
    return lines


def line_texts(lines: list[list[OCRWord]]) -> list[str]:
    """Join each reconstructed line into a single space-separated string."""
    return [" ".join(word.text for word in line) for line in lines]

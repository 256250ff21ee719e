"""Image cleanup applied to timetable photos and scans before OCR."""

import cv2
import numpy as np

from timegrid.utils.config import PreprocessingConfig
from timegrid.utils.logger import get_logger

logger = get_logger(__name__)


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Convert an RGB, RGBA or grayscale image to single-channel grayscale."""
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)


def prepare_for_ocr(image: np.ndarray, config: PreprocessingConfig) -> np.ndarray:
    """Prepare an image for Tesseract.

    Timetables are mostly printed grids with coloured cells, so the
    defaults convert to grayscale, smooth sensor noise and boost local
    contrast. Binarization is off by default because it erases text on
    dark cell backgrounds.

    Args:
        image: Input image as loaded by Pillow (RGB, RGBA or grayscale).
        config: Preprocessing toggles and CLAHE parameters.

    Returns:
        Single-channel uint8 image.
    """
    result = to_grayscale(image)
    if result.dtype != np.uint8:
        result = cv2.normalize(result, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)

    steps: list[str] = []
    if config.denoise_enabled:
        result = cv2.bilateralFilter(result, 9, 75, 75)
        steps.append("denoise")

    if config.contrast_enabled:
        tile = config.clahe_tile_size
        clahe = cv2.createCLAHE(clipLimit=config.clahe_clip_limit, tileGridSize=(tile, tile))
        result = clahe.apply(result)
        steps.append("clahe")

    if config.binarize_enabled:
        result = cv2.adaptiveThreshold(
            result,
            255,
            cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
            cv2.THRESH_BINARY,
            11,
            2,
        )
        steps.append("binarize")

    logger.debug("Preprocessing steps applied: %s", ", ".join(steps) or "none")
    return result

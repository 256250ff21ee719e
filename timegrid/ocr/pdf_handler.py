"""PDF handling for timetable documents.

Reads the embedded text layer directly with PyMuPDF and, for scanned PDFs
without one, rasterizes the pages with pdf2image so they can be OCR'd.
"""

from pathlib import Path

import fitz
import numpy as np
from pdf2image import convert_from_bytes, convert_from_path

from timegrid.utils.logger import get_logger

logger = get_logger(__name__)


def _existing_path(pdf_source: Path | str | bytes) -> Path | None:
    """Return the source as a checked path, or ``None`` for raw bytes."""
    if isinstance(pdf_source, bytes):
        return None
    path = Path(pdf_source)
    if not path.exists():
        raise FileNotFoundError(f"PDF file not found: {path}")
    return path


class PDFHandler:
    """Extracts text or page images from PDF files.

    Args:
        dpi: Resolution for rasterizing scanned pages.
    """

    def __init__(self, dpi: int = 300) -> None:
        self.dpi = dpi

    def extract_text(self, pdf_source: Path | bytes) -> tuple[str, int]:
        """Read the text layer of a PDF.

        Args:
            pdf_source: Path to a PDF file or raw PDF bytes.

        Returns:
            Tuple of (text with pages separated by blank lines, page count).

        Raises:
            FileNotFoundError: If a path is given and the file does not exist.
            RuntimeError: If the PDF cannot be opened.
        """
        path = _existing_path(pdf_source)
        try:
            doc = (
                fitz.open(stream=pdf_source, filetype="pdf")
                if path is None
                else fitz.open(str(path))
            )
        except Exception as exc:
            raise RuntimeError(f"PDF text extraction failed: {exc}") from exc

        with doc:
            page_texts = [page.get_text().strip() for page in doc]

        text = "\n\n".join(t for t in page_texts if t)
        logger.info(
            "Read %d characters of text layer from %d PDF pages",
            len(text),
            len(page_texts),
        )
        return text, len(page_texts)

    def pdf_to_images(self, pdf_source: Path | bytes) -> list[np.ndarray]:
        """Rasterize every page of a scanned PDF.

        Returns:
            List of page images as RGB numpy arrays.

        Raises:
            FileNotFoundError: If a path is given and the file does not exist.
            RuntimeError: If PDF conversion fails.
        """
        path = _existing_path(pdf_source)
        try:
            if path is None:
                pages = convert_from_bytes(pdf_source, dpi=self.dpi)
            else:
                pages = convert_from_path(str(path), dpi=self.dpi)
        except Exception as exc:
            raise RuntimeError(f"PDF conversion failed: {exc}") from exc

        logger.info("Rasterized %d scanned PDF pages at %d DPI", len(pages), self.dpi)
        return [np.array(page.convert("RGB")) for page in pages]

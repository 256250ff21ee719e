"""File-type routing for uploaded timetable documents.

Images go through preprocessing and OCR, PDFs are read through their text
layer (falling back to OCR of rasterized pages when there is none) and
Word documents are read directly.
"""

import io
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
from PIL import Image

from timegrid.utils.config import AppConfig
from timegrid.utils.logger import get_logger

from .docx_reader import extract_docx_text
from .lines import group_words_into_lines, line_texts
from .pdf_handler import PDFHandler
from .preprocess import prepare_for_ocr
from .tesseract_engine import OCRResult, TesseractEngine

logger = get_logger(__name__)

DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PDF_MIME_TYPE = "application/pdf"
IMAGE_MIME_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png"})
SUPPORTED_MIME_TYPES = IMAGE_MIME_TYPES | {PDF_MIME_TYPE, DOCX_MIME_TYPE}


class UnsupportedFileTypeError(ValueError):
    """Raised when a document's MIME type has no extraction route."""


@dataclass
class OCRPage:
    """OCR output for one image or rasterized page, with rebuilt lines."""

    ocr_result: OCRResult
    lines: list[str]


@dataclass
class DocumentText:
    """Text recovered from a document, ready for prompt building."""

    source_file: str
    mime_type: str
    kind: str
    text: str
    pages: list[OCRPage] = field(default_factory=list)
    page_count: int = 1

    @property
    def confidence(self) -> float | None:
        """Mean OCR confidence, or ``None`` when no OCR was needed."""
        if not self.pages:
            return None
        return sum(p.ocr_result.confidence for p in self.pages) / len(self.pages)


def guess_mime_type(path: Path) -> str:
    """Guess a MIME type from the file suffix."""
    if path.suffix.lower() == ".docx":
        return DOCX_MIME_TYPE
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or "application/octet-stream"


class FileTypeRouter:
    """Dispatches a document to the matching text extraction route.

    Args:
        config: Application configuration object.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.pdf_handler = PDFHandler(dpi=config.ocr.pdf_dpi)
        self.ocr_engine = TesseractEngine(
            tesseract_cmd=config.ocr.tesseract_cmd,
            default_lang=config.ocr.default_lang,
            psm=config.ocr.psm,
        )

    def load(self, path: Path, mime_type: str | None = None) -> DocumentText:
        """Extract text from a document on disk.

        Args:
            path: Path to the document.
            mime_type: MIME type recorded at upload; guessed when omitted.

        Returns:
            Extracted document text.

        Raises:
            FileNotFoundError: If the file does not exist.
            UnsupportedFileTypeError: If the MIME type is not supported.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        mime_type = (mime_type or guess_mime_type(path)).lower()
        logger.info("Routing %s (%s)", path.name, mime_type)

        if mime_type in IMAGE_MIME_TYPES:
            return self._from_image(path, mime_type)
        if mime_type == PDF_MIME_TYPE:
            return self._from_pdf(path)
        if mime_type == DOCX_MIME_TYPE:
            text = extract_docx_text(path)
            return DocumentText(
                source_file=path.name, mime_type=mime_type, kind="docx", text=text
            )
        raise UnsupportedFileTypeError(f"Unsupported file type: {mime_type}")

    def ocr_image(self, image: np.ndarray) -> OCRPage:
        """Preprocess and OCR one image, rebuilding its text lines."""
        prepared = prepare_for_ocr(image, self.config.preprocessing)
        result = self.ocr_engine.extract_text(prepared)
        lines = group_words_into_lines(result.words, self.config.ocr.line_threshold)
        return OCRPage(ocr_result=result, lines=line_texts(lines))

    def _from_image(self, path: Path, mime_type: str) -> DocumentText:
        with Image.open(io.BytesIO(path.read_bytes())) as img:
            image = np.array(img.convert("RGB"))
        page = self.ocr_image(image)
        return DocumentText(
            source_file=path.name,
            mime_type=mime_type,
            kind="image",
            text=page.ocr_result.text,
            pages=[page],
        )

    def _from_pdf(self, path: Path) -> DocumentText:
        text, page_count = self.pdf_handler.extract_text(path)
        if text.strip():
            return DocumentText(
                source_file=path.name,
                mime_type=PDF_MIME_TYPE,
                kind="pdf",
                text=text,
                page_count=page_count,
            )

        logger.info("PDF %s has no text layer, running OCR on its pages", path.name)
        pages = [self.ocr_image(image) for image in self.pdf_handler.pdf_to_images(path)]
        return DocumentText(
            source_file=path.name,
            mime_type=PDF_MIME_TYPE,
            kind="scanned_pdf",
            text="\n\n".join(p.ocr_result.text for p in pages),
            pages=pages,
            page_count=len(pages),
        )

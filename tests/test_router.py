"""Tests for file-type routing, PDF handling and Word extraction."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import docx
import numpy as np
import pytest
from PIL import Image

from timegrid.ocr.docx_reader import extract_docx_text
from timegrid.ocr.pdf_handler import PDFHandler
from timegrid.ocr.router import (
    DOCX_MIME_TYPE,
    PDF_MIME_TYPE,
    DocumentText,
    FileTypeRouter,
    OCRPage,
    UnsupportedFileTypeError,
    guess_mime_type,
)
from timegrid.ocr.tesseract_engine import BoundingBox, OCRResult, OCRWord
from timegrid.utils.config import AppConfig


def _mock_pil_image(width: int = 300, height: int = 200) -> Image.Image:
    return Image.fromarray(np.zeros((height, width, 3), dtype=np.uint8))


def _ocr_page(text: str, confidence: float = 0.8) -> OCRPage:
    return OCRPage(
        ocr_result=OCRResult(text=text, words=[], confidence=confidence),
        lines=text.splitlines(),
    )


def _write_docx(path: Path) -> None:
    document = docx.Document()
    document.add_paragraph("Class 2B Timetable")
    document.add_paragraph("")
    table = document.add_table(rows=2, cols=3)
    for cell, text in zip(table.rows[0].cells, ["", "9:00-10:00", "10:15-11:15"]):
        cell.text = text
    for cell, text in zip(table.rows[1].cells, ["Monday", "Maths", "English"]):
        cell.text = text
    document.save(str(path))


class TestGuessMimeType:
    """Tests for MIME type guessing from file names."""

    def test_known_suffixes(self) -> None:
        assert guess_mime_type(Path("week.PDF")) == PDF_MIME_TYPE
        assert guess_mime_type(Path("week.png")) == "image/png"
        assert guess_mime_type(Path("week.docx")) == DOCX_MIME_TYPE

    def test_unknown_suffix(self) -> None:
        assert guess_mime_type(Path("week")) == "application/octet-stream"


class TestDocumentText:
    """Tests for the DocumentText data class."""

    def test_confidence_without_ocr(self) -> None:
        doc = DocumentText("a.docx", DOCX_MIME_TYPE, "docx", "text")
        assert doc.confidence is None

    def test_confidence_is_page_mean(self) -> None:
        doc = DocumentText(
            "a.pdf",
            PDF_MIME_TYPE,
            "scanned_pdf",
            "x",
            pages=[_ocr_page("a", 0.6), _ocr_page("b", 0.8)],
        )
        assert abs(doc.confidence - 0.7) < 1e-9


class TestPDFHandler:
    """Tests for the PDFHandler class."""

    def test_init_default_dpi(self) -> None:
        assert PDFHandler().dpi == 300

    @patch("timegrid.ocr.pdf_handler.fitz")
    def test_extract_text_from_path(self, mock_fitz: MagicMock, tmp_path: Path) -> None:
        pdf = tmp_path / "week.pdf"
        pdf.write_bytes(b"%PDF-1.4")
        page1, page2 = MagicMock(), MagicMock()
        page1.get_text.return_value = "Monday\nMaths 9:00-10:00\n"
        page2.get_text.return_value = "   "
        doc = MagicMock()
        doc.__enter__.return_value = doc
        doc.__iter__.return_value = iter([page1, page2])
        mock_fitz.open.return_value = doc

        text, page_count = PDFHandler().extract_text(pdf)

        assert text == "Monday\nMaths 9:00-10:00"
        assert page_count == 2
        mock_fitz.open.assert_called_once_with(str(pdf))

    @patch("timegrid.ocr.pdf_handler.fitz")
    def test_extract_text_from_bytes(self, mock_fitz: MagicMock) -> None:
        doc = MagicMock()
        doc.__iter__.return_value = iter([])
        mock_fitz.open.return_value = doc

        text, page_count = PDFHandler().extract_text(b"%PDF-1.4")

        assert (text, page_count) == ("", 0)
        mock_fitz.open.assert_called_once_with(stream=b"%PDF-1.4", filetype="pdf")

    def test_extract_text_missing_file(self) -> None:
        with pytest.raises(FileNotFoundError):
            PDFHandler().extract_text(Path("/nonexistent/file.pdf"))

    @patch("timegrid.ocr.pdf_handler.fitz")
    def test_extract_text_wraps_errors(self, mock_fitz: MagicMock) -> None:
        mock_fitz.open.side_effect = ValueError("broken xref")
        with pytest.raises(RuntimeError, match="PDF text extraction failed"):
            PDFHandler().extract_text(b"not a pdf")

    @patch("timegrid.ocr.pdf_handler.convert_from_path")
    def test_pdf_to_images_from_path(self, mock_convert: MagicMock, tmp_path: Path) -> None:
        pdf = tmp_path / "scan.pdf"
        pdf.write_bytes(b"%PDF-1.4")
        mock_convert.return_value = [_mock_pil_image(), _mock_pil_image()]

        images = PDFHandler(dpi=200).pdf_to_images(pdf)

        assert len(images) == 2
        assert images[0].shape == (200, 300, 3)
        mock_convert.assert_called_once_with(str(pdf), dpi=200)

    @patch("timegrid.ocr.pdf_handler.convert_from_bytes")
    def test_pdf_to_images_wraps_errors(self, mock_convert: MagicMock) -> None:
        mock_convert.side_effect = OSError("poppler missing")
        with pytest.raises(RuntimeError, match="PDF conversion failed"):
            PDFHandler().pdf_to_images(b"%PDF-1.4")


class TestDocxReader:
    """Tests for Word document extraction."""

    def test_paragraphs_and_tables(self, tmp_path: Path) -> None:
        path = tmp_path / "week.docx"
        _write_docx(path)

        text = extract_docx_text(path)

        assert text.splitlines() == [
            "Class 2B Timetable",
            " | 9:00-10:00 | 10:15-11:15",
            "Monday | Maths | English",
        ]

    def test_from_bytes(self, tmp_path: Path) -> None:
        path = tmp_path / "week.docx"
        _write_docx(path)
        assert "Monday | Maths" in extract_docx_text(path.read_bytes())


class TestFileTypeRouter:
    """Tests for the FileTypeRouter class."""

    def test_missing_file(self) -> None:
        router = FileTypeRouter(AppConfig())
        with pytest.raises(FileNotFoundError):
            router.load(Path("/nonexistent/week.png"))

    def test_unsupported_type(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.txt"
        path.write_text("Monday maths")
        router = FileTypeRouter(AppConfig())
        with pytest.raises(UnsupportedFileTypeError):
            router.load(path)

    def test_image_is_ocrd(self, tmp_path: Path) -> None:
        path = tmp_path / "week.png"
        _mock_pil_image().save(path, format="PNG")
        router = FileTypeRouter(AppConfig())

        with patch.object(router, "ocr_image", return_value=_ocr_page("Maths 9:00")) as ocr:
            doc = router.load(path)

        assert doc.kind == "image"
        assert doc.mime_type == "image/png"
        assert doc.text == "Maths 9:00"
        assert len(doc.pages) == 1
        assert ocr.call_args[0][0].shape == (200, 300, 3)

    def test_declared_mime_type_wins(self, tmp_path: Path) -> None:
        path = tmp_path / "1700000000000-42"
        _mock_pil_image().save(path, format="PNG")
        router = FileTypeRouter(AppConfig())

        with patch.object(router, "ocr_image", return_value=_ocr_page("x")):
            doc = router.load(path, mime_type="image/jpeg")

        assert doc.kind == "image"

    def test_pdf_with_text_layer(self, tmp_path: Path) -> None:
        path = tmp_path / "week.pdf"
        path.write_bytes(b"%PDF-1.4")
        router = FileTypeRouter(AppConfig())

        with patch.object(router.pdf_handler, "extract_text", return_value=("Mon Maths", 1)):
            with patch.object(router.pdf_handler, "pdf_to_images") as rasterize:
                doc = router.load(path)

        assert doc.kind == "pdf"
        assert doc.text == "Mon Maths"
        assert doc.pages == []
        rasterize.assert_not_called()

    def test_scanned_pdf_falls_back_to_ocr(self, tmp_path: Path) -> None:
        path = tmp_path / "scan.pdf"
        path.write_bytes(b"%PDF-1.4")
        router = FileTypeRouter(AppConfig())
        images = [np.zeros((10, 10, 3), dtype=np.uint8)] * 2

        with (
            patch.object(router.pdf_handler, "extract_text", return_value=("", 2)),
            patch.object(router.pdf_handler, "pdf_to_images", return_value=images),
            patch.object(
                router, "ocr_image", side_effect=[_ocr_page("page one"), _ocr_page("page two")]
            ),
        ):
            doc = router.load(path)

        assert doc.kind == "scanned_pdf"
        assert doc.page_count == 2
        assert doc.text == "page one\n\npage two"

    def test_docx(self, tmp_path: Path) -> None:
        path = tmp_path / "week.docx"
        _write_docx(path)
        doc = FileTypeRouter(AppConfig()).load(path)
        assert doc.kind == "docx"
        assert "Monday | Maths | English" in doc.text

    @patch("timegrid.ocr.router.TesseractEngine")
    def test_ocr_image_rebuilds_lines(
        self, mock_engine_cls: MagicMock, sample_color_image: np.ndarray
    ) -> None:
        words = [
            OCRWord("Maths", BoundingBox(100, 10, 40, 20), 0.9),
            OCRWord("Monday", BoundingBox(10, 12, 60, 20), 0.9),
        ]
        mock_engine_cls.return_value.extract_text.return_value = OCRResult(
            text="Monday Maths", words=words, confidence=0.9
        )
        router = FileTypeRouter(AppConfig())

        page = router.ocr_image(sample_color_image)

        assert page.lines == ["Monday Maths"]
        prepared = mock_engine_cls.return_value.extract_text.call_args[0][0]
        assert prepared.ndim == 2

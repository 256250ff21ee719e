"""Plain-text extraction from Word (.docx) timetables."""

import io
from pathlib import Path

import docx

from timegrid.utils.logger import get_logger

logger = get_logger(__name__)


def extract_docx_text(source: Path | bytes) -> str:
    """Extract paragraph and table text from a Word document.

    Table rows are emitted one per line with cells separated by `` | ``
    so that the LLM still sees the grid structure.

    Args:
        source: Path to a .docx file or its raw bytes.

    Returns:
        Document text.
    """
    if isinstance(source, bytes):
        document = docx.Document(io.BytesIO(source))
    else:
        document = docx.Document(str(source))

    parts: list[str] = [p.text.strip() for p in document.paragraphs if p.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            if any(cells):
                parts.append(" | ".join(cells))

    text = "\n".join(parts)
    logger.info("Extracted %d characters from Word document", len(text))
    return text

"""Storage of uploaded documents on local disk."""

import mimetypes
import random
import time
from pathlib import Path

from timegrid.ocr.router import SUPPORTED_MIME_TYPES

from .logger import get_logger

logger = get_logger(__name__)


def is_supported_mime_type(mime_type: str | None) -> bool:
    return bool(mime_type) and mime_type in SUPPORTED_MIME_TYPES


def unique_filename(
    original_name: str, mime_type: str | None = None, now_ms: int | None = None
) -> str:
    """Build a collision-resistant stored name ``{epoch_ms}-{random}{ext}``.

    The extension comes from the original name, or from the MIME type when
    the original has none.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = Path(original_name).suffix.lower()
    if not suffix and mime_type:
        suffix = mimetypes.guess_extension(mime_type) or ""
    return f"{now_ms}-{random.randint(0, 10**9)}{suffix}"


def save_upload(
    content: bytes, original_name: str, upload_dir: Path, mime_type: str | None = None
) -> Path:
    """Write uploaded bytes under a unique name.

    Args:
        content: Raw file bytes.
        original_name: Client-supplied filename.
        upload_dir: Target directory, created if missing.
        mime_type: Declared MIME type.

    Returns:
        Path of the stored file.
    """
    upload_dir.mkdir(parents=True, exist_ok=True)
    path = upload_dir / unique_filename(original_name, mime_type)
    path.write_bytes(content)
    logger.info("Stored upload %s as %s (%d bytes)", original_name, path.name, len(content))
    return path

"""File type detection from leading bytes, and extension correction."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from takeout_organizer.config import RAW_EXTENSIONS

logger = logging.getLogger(__name__)

_HEAD_SIZE = 24

JPEG = "jpeg"
PNG = "png"
GIF = "gif"
WEBP = "webp"
BMP = "bmp"
HEIC = "heic"
TIFF = "tiff"

HEIC_BRANDS = frozenset({"heic", "heix", "hevc", "hevx", "mif1", "msf1"})

# First entry is the canonical extension used for corrections.
TYPE_EXTENSIONS: dict[str, tuple[str, ...]] = {
    JPEG: (".jpg", ".jpeg"),
    PNG: (".png",),
    GIF: (".gif",),
    WEBP: (".webp",),
    BMP: (".bmp",),
    HEIC: (".heic", ".heif"),
    TIFF: (".tiff", ".tif", ".dng", ".cr2", ".nef", ".arw", ".raw"),
}


def read_head(path: Path, length: int = _HEAD_SIZE) -> bytes:
    with open(path, "rb") as f:
        return f.read(length)


def detect_type(head: bytes) -> Optional[str]:
    """Identify an image type from its first bytes, or None."""
    if head.startswith(b"\xff\xd8\xff"):
        return JPEG
    if head.startswith(b"\x89PNG\r\n\x1a\n"):
        return PNG
    if head.startswith((b"GIF87a", b"GIF89a")):
        return GIF
    if head.startswith(b"RIFF") and head[8:12] == b"WEBP":
        return WEBP
    if head.startswith(b"BM"):
        return BMP
    # ISO BMFF: [4 bytes size]['ftyp'][4 bytes major brand]
    if head[4:8] == b"ftyp":
        brand = head[8:12].decode("ascii", errors="replace").lower()
        if brand in HEIC_BRANDS:
            return HEIC
    if head.startswith((b"II*\x00", b"MM\x00*")):
        return TIFF
    return None


def detect_file_type(path: Path) -> Optional[str]:
    """Like detect_type, reading the file. Unreadable files yield None."""
    try:
        return detect_type(read_head(path))
    except OSError as e:
        logger.debug(f"Cannot read signature of {path}: {e}")
        return None


def corrected_extension(detected: Optional[str], declared: str) -> str:
    """Extension a file should carry given its detected type."""
    if detected is None:
        return declared

    valid = TYPE_EXTENSIONS[detected]
    declared_lower = declared.lower()
    if declared_lower in valid:
        return declared
    if detected == TIFF and declared_lower in RAW_EXTENSIONS:
        return declared

    canonical = valid[0]
    if declared and declared == declared.upper() and declared != declared.lower():
        return canonical.upper()
    return canonical


def correct_extension(path: Path, declared: str) -> tuple[str, bool]:
    """Return (extension, corrected) for a file on disk."""
    detected = detect_file_type(path)
    extension = corrected_extension(detected, declared)
    corrected = extension != declared
    if corrected:
        logger.info(
            f"Extension mismatch: file={path.name} declared={declared} "
            f"detected={detected} corrected_to={extension}"
        )
    return extension, corrected

"""Filename and folder helpers: identity, duplicate suffixes, album folders."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path

from takeout_organizer.config import DUPLICATE_PATTERN, YEAR_FOLDER_PREFIX
from takeout_organizer.errors import PathTraversalError


def file_id(path: Path) -> str:
    """Stable identity for a file: md5 of its absolute path, not its content."""
    return hashlib.md5(str(path.absolute()).encode("utf-8")).hexdigest()


def parse_duplicate_filename(filename: str) -> tuple[str, int]:
    """Split 'name(3).jpg' into ('name.jpg', 3). Other names give (filename, 0)."""
    match = DUPLICATE_PATTERN.match(filename)
    if not match:
        return filename, 0
    name, index, ext = match.groups()
    return f"{name}{ext}", int(index)


def source_folder(file_path: Path, media_root: Path) -> str:
    """First path segment of ``file_path`` under ``media_root``.

    Returns "" for files directly in the root.
    """
    parts = Path(os.path.relpath(file_path, media_root)).parts
    if len(parts) <= 1:
        return ""

    folder = parts[0]
    if ".." in folder or os.path.isabs(folder):
        raise PathTraversalError(f"Invalid source folder name: {folder}")
    return folder


def is_album_folder(folder: str) -> bool:
    """'Photos from YYYY' folders are year buckets, not user albums."""
    return folder != "" and not folder.startswith(YEAR_FOLDER_PREFIX)

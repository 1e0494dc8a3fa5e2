"""Capture year and timestamp resolution from a cascade of signals.

Each ``year_from_*`` function inspects one source and returns a year or
None. ``resolve_year`` walks them in priority order and keeps the first
year inside [1990, current year + 1].
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from takeout_organizer.config import DATE_PATTERN, MIN_VALID_YEAR, YEAR_FOLDER_PATTERN
from takeout_organizer.models import MediaItem
from takeout_organizer.sidecar import capture_timestamp, creation_timestamp

logger = logging.getLogger(__name__)


def current_year() -> int:
    return datetime.now(timezone.utc).year


def is_valid_year(year: int) -> bool:
    return MIN_VALID_YEAR <= year <= current_year() + 1


def utc_year(timestamp: float) -> int:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).year


def year_from_capture_time(item: MediaItem) -> Optional[int]:
    if item.metadata is None:
        return None
    ts = capture_timestamp(item.metadata)
    return utc_year(ts) if ts is not None else None


def year_from_creation_time(item: MediaItem) -> Optional[int]:
    if item.metadata is None:
        return None
    ts = creation_timestamp(item.metadata)
    return utc_year(ts) if ts is not None else None


def year_from_filename(item: MediaItem) -> Optional[int]:
    match = DATE_PATTERN.search(item.filename)
    return int(match.group(1)) if match else None


def year_from_source_folder(item: MediaItem) -> Optional[int]:
    match = YEAR_FOLDER_PATTERN.match(item.source_folder)
    return int(match.group(1)) if match else None


def year_from_mtime(item: MediaItem) -> Optional[int]:
    try:
        return utc_year(item.original_path.stat().st_mtime)
    except OSError as e:
        logger.warning(f"Cannot stat {item.original_path}: {e}")
        return None


YEAR_SOURCES: list[tuple[str, Callable[[MediaItem], Optional[int]]]] = [
    ("capture_time", year_from_capture_time),
    ("creation_time", year_from_creation_time),
    ("filename", year_from_filename),
    ("source_folder", year_from_source_folder),
    ("mtime", year_from_mtime),
]


def resolve_year(item: MediaItem) -> Optional[int]:
    """Capture year for an item, or None when no source yields a valid year."""
    for source, candidate in YEAR_SOURCES:
        year = candidate(item)
        if year is not None and is_valid_year(year):
            logger.debug(f"Year resolved: file={item.filename} year={year} source={source}")
            return year
    logger.warning(f"Could not determine year for {item.filename}")
    return None


def resolve_timestamp(item: MediaItem) -> Optional[float]:
    """Authoritative capture instant in epoch seconds.

    Capture time, then creation time, then the mtime of the organized copy
    (or of the original when the item was never organized).
    """
    if item.metadata is not None:
        ts = capture_timestamp(item.metadata)
        if ts is None:
            ts = creation_timestamp(item.metadata)
        if ts is not None:
            return float(ts)

    path: Path = item.year_path or item.original_path
    try:
        return path.stat().st_mtime
    except OSError:
        return None

"""Set filesystem access/modification times on organized files."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from takeout_organizer.dates import resolve_timestamp
from takeout_organizer.models import MediaItem, ProcessingContext, ProcessingStatus
from takeout_organizer.workers import run_pool

logger = logging.getLogger(__name__)


def same_inode(first: Optional[Path], second: Optional[Path]) -> bool:
    """True when both paths are links to one file. Unreadable paths are not."""
    if first is None or second is None:
        return False
    try:
        a = os.stat(first)
        b = os.stat(second)
    except OSError:
        return False
    return a.st_ino == b.st_ino and a.st_dev == b.st_dev


def set_item_timestamps(item: MediaItem) -> None:
    """Stamp the year copy, and the album copy when it is a separate file."""
    timestamp = resolve_timestamp(item)
    if timestamp is None:
        raise ValueError("No valid timestamp found")

    if item.year_path is not None:
        os.utime(item.year_path, (timestamp, timestamp))

    # Hard links share the inode, so the year copy already carries the time.
    if item.album_path is not None and not same_inode(item.year_path, item.album_path):
        os.utime(item.album_path, (timestamp, timestamp))


class TimestampSetter:
    def __init__(self, context: ProcessingContext) -> None:
        self.context = context

    def apply(self, item: MediaItem) -> None:
        try:
            set_item_timestamps(item)
        except (OSError, ValueError) as e:
            item.record_error(f"Timestamp update failed: {e}")
            self.context.stats.increment("timestamp_failures")
            logger.error(f"Failed to set timestamp for {item.filename}: {e}")


def set_timestamps(context: ProcessingContext) -> None:
    items = [
        item for item in context.files.values()
        if item.status == ProcessingStatus.COMPLETED
    ]
    logger.info(f"  Setting timestamps for {len(items)} files")

    before = context.stats.timestamp_failures
    run_pool(
        items,
        TimestampSetter(context).apply,
        context.config.processing.concurrency,
        "Timestamped",
    )

    failed = context.stats.timestamp_failures - before
    logger.info(f"  Timestamps complete: {len(items) - failed} succeeded, {failed} failed")

"""File placement: unique-name allocation, hard links, and the per-item organizer."""

from __future__ import annotations

import errno
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from takeout_organizer.config import MAX_UNIQUE_FILENAME_ATTEMPTS
from takeout_organizer.dates import resolve_year
from takeout_organizer.errors import UniquePathError
from takeout_organizer.models import MediaItem, ProcessingContext, ProcessingStatus
from takeout_organizer.paths import is_album_folder
from takeout_organizer.workers import run_pool

logger = logging.getLogger(__name__)

HARDLINK = "hardlink"
COPY = "copy"


@dataclass(frozen=True)
class Placement:
    path: Path
    method: str  # HARDLINK or COPY


def candidate_name(filename: str, attempt: int) -> str:
    """'photo.jpg' for attempt 0, then 'photo_2.jpg', 'photo_3.jpg', ..."""
    if attempt == 0:
        return filename
    stem, ext = os.path.splitext(filename)
    return f"{stem}_{attempt + 1}{ext}"


def already_exists(error: OSError) -> bool:
    """Link and copy failures report a taken name differently; check both."""
    if isinstance(error, FileExistsError) or error.errno == errno.EEXIST:
        return True
    return "already exists" in str(error).lower()


def copy_exclusive(source: Path, target: Path) -> None:
    """Copy bytes and timestamps, refusing to overwrite an existing target."""
    with open(source, "rb") as src, open(target, "xb") as dst:
        try:
            shutil.copyfileobj(src, dst)
        except BaseException:
            dst.close()
            target.unlink(missing_ok=True)
            raise
    shutil.copystat(source, target)


def link_or_copy(source: Path, target: Path, fallback_to_copy: bool) -> str:
    """Hard-link ``source`` at ``target``, copying when linking is impossible."""
    try:
        os.link(source, target)
        return HARDLINK
    except OSError as e:
        if already_exists(e) or not fallback_to_copy:
            raise
        logger.debug(f"Hard link failed ({e}), copying {source} -> {target}")
    copy_exclusive(source, target)
    return COPY


def _same_path(source: Path, target: Path) -> bool:
    return source.resolve() == target.resolve()


def place_unique(
    source: Path,
    target_dir: Path,
    filename: str,
    use_hard_links: bool = False,
    fallback_to_copy: bool = True,
) -> Placement:
    """Materialize ``source`` in ``target_dir`` under the first free name.

    Never overwrites. A taken name moves on to the next ``_N`` suffix, which
    also makes concurrent workers targeting one directory safe; any other
    error propagates.
    """
    for attempt in range(MAX_UNIQUE_FILENAME_ATTEMPTS):
        target = target_dir / candidate_name(filename, attempt)

        if _same_path(source, target):
            return Placement(target, HARDLINK if use_hard_links else COPY)

        try:
            if use_hard_links:
                method = link_or_copy(source, target, fallback_to_copy)
            else:
                copy_exclusive(source, target)
                method = COPY
            return Placement(target, method)
        except OSError as e:
            if already_exists(e):
                continue
            raise

    raise UniquePathError(
        f"Could not generate unique filename for {filename} in {target_dir} "
        f"after {MAX_UNIQUE_FILENAME_ATTEMPTS} attempts"
    )


class Organizer:
    """Places each item under its year directory and, for albums, its album directory."""

    def __init__(self, context: ProcessingContext) -> None:
        self.context = context
        self.config = context.config

    def year_folder(self, item: MediaItem) -> str:
        year = resolve_year(item)
        if year is None:
            return self.config.output.unknown_year_folder
        return str(year)

    def organize(self, item: MediaItem) -> None:
        """pending -> completed | failed. Partial placements are left in place."""
        stats = self.context.stats
        try:
            year_dir = self.context.by_year_dir / self.year_folder(item)
            year_dir.mkdir(parents=True, exist_ok=True)

            primary = place_unique(item.original_path, year_dir, item.filename)
            item.year_path = primary.path
            logger.debug(f"Organized by year: {item.filename} -> {primary.path}")

            if is_album_folder(item.source_folder):
                album_dir = self.context.by_album_dir / item.source_folder
                album_dir.mkdir(parents=True, exist_ok=True)

                secondary = place_unique(
                    primary.path,
                    album_dir,
                    item.filename,
                    use_hard_links=self.config.processing.use_hard_links,
                    fallback_to_copy=self.config.processing.fallback_to_copy,
                )
                item.album_path = secondary.path
                logger.debug(
                    f"Organized by album: {item.filename} -> {secondary.path} "
                    f"({secondary.method})"
                )
        except Exception as e:
            item.status = ProcessingStatus.FAILED
            item.record_error(str(e))
            stats.increment("failed_files")
            logger.error(f"Failed to organize {item.original_path}: {e}")
            return

        item.status = ProcessingStatus.COMPLETED
        stats.increment("processed_files")


def organize_files(context: ProcessingContext) -> None:
    items = list(context.files.values())
    concurrency = context.config.processing.concurrency
    logger.info(f"  Organizing {len(items)} files with concurrency {concurrency}")

    run_pool(items, Organizer(context).organize, concurrency, "Organized")

    logger.info(
        f"  Organization complete: {context.stats.processed_files} succeeded, "
        f"{context.stats.failed_files} failed"
    )

"""Media discovery: walk the staging tree and build the item catalog."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from takeout_organizer.config import MEDIA_EXTENSIONS, PROGRESS_EVERY
from takeout_organizer.errors import DiscoveryError
from takeout_organizer.models import MediaItem, ProcessingContext
from takeout_organizer.paths import (
    file_id,
    is_album_folder,
    parse_duplicate_filename,
    source_folder,
)
from takeout_organizer.sidecar import find_sidecar, is_sidecar_file, parse_sidecar
from takeout_organizer.signatures import correct_extension

logger = logging.getLogger(__name__)


def build_item(file_path: Path, media_root: Path) -> MediaItem:
    """Inspect one staged media file and describe it as a MediaItem."""
    original_name = file_path.name
    declared = file_path.suffix
    folder = source_folder(file_path, media_root)

    extension, corrected = correct_extension(file_path, declared)
    filename = (
        original_name[: len(original_name) - len(declared)] + extension
        if corrected else original_name
    )

    metadata = None
    sidecar_path = find_sidecar(file_path)
    if sidecar_path is not None:
        metadata = parse_sidecar(sidecar_path)
    else:
        logger.debug(f"No sidecar for {file_path}")

    base_filename, duplicate_index = parse_duplicate_filename(filename)

    return MediaItem(
        id=file_id(file_path),
        original_path=file_path,
        filename=filename,
        extension=extension,
        metadata=metadata,
        source_folder=folder,
        duplicate_group=base_filename if base_filename != filename else None,
        duplicate_index=duplicate_index,
    )


class Scanner:
    def __init__(self, context: ProcessingContext) -> None:
        self.context = context

    def find_media(self) -> list[Path]:
        """All media files under the media root, sidecars excluded."""
        root = self.context.media_root
        if not root.is_dir():
            raise DiscoveryError(f"Media directory not found: {root}")

        media: list[Path] = []
        total = 0
        for dirpath, dirs, files in os.walk(root):
            dirs.sort()
            dir_path = Path(dirpath)
            for filename in sorted(files):
                total += 1
                if is_sidecar_file(filename):
                    continue
                if os.path.splitext(filename)[1].lower() not in MEDIA_EXTENSIONS:
                    continue
                file_path = dir_path / filename
                if file_path.is_file():
                    media.append(file_path)

        logger.info(f"  Found {total} files, {len(media)} media files")
        return media

    def scan(self) -> None:
        """Populate the context catalog. Per-file failures are counted, not raised."""
        context = self.context
        stats = context.stats
        media_files = self.find_media()

        for i, file_path in enumerate(media_files, start=1):
            try:
                item = build_item(file_path, context.media_root)
                size = file_path.stat().st_size
            except Exception as e:
                stats.increment("failed_files")
                logger.error(f"Failed to process media file {file_path}: {e}")
                continue

            context.files[item.id] = item
            stats.increment("total_size", size)

            if i % PROGRESS_EVERY == 0:
                logger.info(f"  Processed {i}/{len(media_files)} files")

        stats.total_files = len(context.files)
        albums = {
            item.source_folder
            for item in context.files.values()
            if is_album_folder(item.source_folder)
        }
        stats.album_count = len(albums)

        logger.info(f"  Discovery complete: {stats.total_files} media files cataloged")
        logger.info(f"  Discovered {stats.album_count} albums")

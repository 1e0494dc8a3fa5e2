"""Tag writing into organized photos through a persistent exiftool session."""

from __future__ import annotations

import html
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Protocol, Union

import exiftool
from exiftool.exceptions import ExifToolException

from takeout_organizer.config import EXIF_CONCURRENCY, EXIFTOOL_TIMEOUT, ExifConfig
from takeout_organizer.errors import MetadataWriteError
from takeout_organizer.models import MediaItem, ProcessingContext, ProcessingStatus
from takeout_organizer.sidecar import capture_timestamp, geo_data
from takeout_organizer.workers import run_pool

logger = logging.getLogger(__name__)

TagValue = Union[str, float, int]


class TagWriter(Protocol):
    def write(
        self, path: Path, tags: dict[str, TagValue], preserve_original: bool,
    ) -> None: ...

    def close(self) -> None: ...


def exif_datetime(timestamp: float) -> str:
    """Epoch seconds as an EXIF date string, 'YYYY:MM:DD HH:MM:SS' in UTC."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y:%m:%d %H:%M:%S")


def build_tags(item: MediaItem, exif: ExifConfig) -> dict[str, TagValue]:
    """Tags to write for an organized item, according to the enabled toggles."""
    tags: dict[str, TagValue] = {}
    metadata = item.metadata
    if metadata is None:
        return tags

    if exif.write_date_time_original:
        ts = capture_timestamp(metadata)
        if ts is not None:
            stamp = exif_datetime(ts)
            tags["DateTimeOriginal"] = stamp
            tags["CreateDate"] = stamp

    if exif.write_gps:
        coord = geo_data(metadata)
        if coord is not None:
            tags["GPSLatitude"] = coord.latitude
            tags["GPSLongitude"] = coord.longitude
            if coord.altitude != 0:
                tags["GPSAltitude"] = coord.altitude
            tags["GPSLatitudeRef"] = "N" if coord.latitude >= 0 else "S"
            tags["GPSLongitudeRef"] = "E" if coord.longitude >= 0 else "W"

    if exif.write_description:
        if metadata.description:
            tags["ImageDescription"] = metadata.description
            tags["Description"] = metadata.description
        if metadata.title and metadata.title != item.filename:
            tags["Title"] = metadata.title

    if exif.write_keywords and item.album_path is not None:
        album = item.album_path.parent.name
        tags["Keywords"] = album
        tags["Subject"] = album

    return tags


def _encode_value(value: TagValue) -> str:
    # Sent with -E: entities are decoded by exiftool, so newlines survive
    # the one-argument-per-line protocol.
    text = str(value)
    return html.escape(text, quote=False).replace("\r", "&#xd;").replace("\n", "&#xa;")


def tag_arguments(
    path: Path, tags: dict[str, TagValue], preserve_original: bool,
) -> list[str]:
    args = ["-E", "-charset", "filename=utf8"]
    if not preserve_original:
        args.append("-overwrite_original_in_place")
    args.extend(f"-{name}={_encode_value(value)}" for name, value in tags.items())
    args.append(str(path))
    return args


class ExifToolSession:
    """One stay-open exiftool process shared by all writers of a run.

    The process starts on first use. Commands are serialized: exiftool
    executes one argument batch at a time.
    """

    def __init__(self, executable: str = "exiftool", timeout: int = EXIFTOOL_TIMEOUT) -> None:
        self.executable = executable
        self.timeout = timeout
        self._helper: Optional[exiftool.ExifToolHelper] = None
        self._lock = threading.Lock()

    def __enter__(self) -> ExifToolSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _ensure_started(self) -> exiftool.ExifToolHelper:
        if self._helper is not None and self._helper.running:
            return self._helper
        logger.debug("Launching stay-open exiftool session")
        try:
            helper = exiftool.ExifToolHelper(
                executable=self.executable,
                common_args=[],
                encoding="utf-8",
                auto_start=False,
                check_execute=False,
            )
            helper.run()
        except (OSError, ExifToolException) as e:
            raise MetadataWriteError(f"Cannot start exiftool: {e}") from e
        self._helper = helper
        return helper

    def write(
        self, path: Path, tags: dict[str, TagValue], preserve_original: bool,
    ) -> None:
        args = tag_arguments(path, tags, preserve_original)
        with self._lock:
            helper = self._ensure_started()
            try:
                output = helper.execute(*args)
            except (OSError, ExifToolException) as e:
                self._helper = None
                raise MetadataWriteError(f"exiftool session failed: {e}") from e
            status = helper.last_status
            stderr = helper.last_stderr or ""

        messages = [line.strip() for line in stderr.splitlines() if line.strip()]
        errors = [line for line in messages if line.lower().startswith("error")]
        for line in messages:
            if line.lower().startswith("warning"):
                logger.debug(f"exiftool: {line}")
        if errors:
            raise MetadataWriteError("; ".join(errors))
        if status:
            raise MetadataWriteError(f"exiftool exited with status {status}")
        if "1 image files updated" not in output and "1 image files unchanged" not in output:
            detail = "; ".join(line.strip() for line in output.splitlines() if line.strip())
            raise MetadataWriteError(f"No file updated: {detail or 'no output'}")

    def close(self) -> None:
        """Stop the exiftool process; it is killed if it does not exit in time."""
        with self._lock:
            helper, self._helper = self._helper, None
        if helper is not None and helper.running:
            helper.terminate(timeout=self.timeout)


class MetadataWriter:
    def __init__(self, context: ProcessingContext, writer: TagWriter) -> None:
        self.context = context
        self.writer = writer
        self.exif = context.config.exif

    def write(self, item: MediaItem) -> None:
        """Push sidecar metadata into the item's year copy. Failures are non-fatal."""
        if not item.is_photo:
            logger.debug(f"Skipping tags for video {item.filename}")
            return
        if item.metadata is None or item.year_path is None:
            logger.debug(f"No metadata or organized path for {item.filename}")
            return

        tags = build_tags(item, self.exif)
        if not tags:
            return

        try:
            self.writer.write(item.year_path, tags, self.exif.preserve_original_file)
        except Exception as e:
            item.record_error(f"EXIF write failed: {e}")
            self.context.stats.increment("exif_failures")
            logger.error(f"Failed to write tags to {item.year_path}: {e}")
            return
        logger.debug(f"Wrote tags to {item.year_path}: {sorted(tags)}")


def write_metadata(
    context: ProcessingContext,
    writer_factory: Callable[[], TagWriter] = ExifToolSession,
) -> None:
    items = [
        item for item in context.files.values()
        if item.status == ProcessingStatus.COMPLETED
    ]
    logger.info(f"  Writing tags for {len(items)} files")

    before = context.stats.exif_failures
    writer = writer_factory()
    try:
        run_pool(items, MetadataWriter(context, writer).write, EXIF_CONCURRENCY, "Tagged")
    finally:
        writer.close()

    failed = context.stats.exif_failures - before
    logger.info(f"  Tag writing complete: {len(items) - failed} succeeded, {failed} failed")

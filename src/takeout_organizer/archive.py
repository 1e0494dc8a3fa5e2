"""Archive validation (zip-bomb limits) and sequential extraction with retry."""

from __future__ import annotations

import logging
import time
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from takeout_organizer.config import (
    MAX_ARCHIVE_ENTRIES,
    MAX_COMPRESSION_RATIO,
    MAX_UNCOMPRESSED_BYTES,
    MIN_RETRY_DELAY_MS,
)
from takeout_organizer.errors import (
    ArchiveError,
    ArchiveNotFoundError,
    ArchiveValidationError,
)
from takeout_organizer.models import ProcessingContext

logger = logging.getLogger(__name__)

Sleep = Callable[[float], None]


def format_bytes(size: float) -> str:
    for unit in ("Bytes", "KB", "MB", "GB", "TB"):
        if size < 1024 or unit == "TB":
            return f"{round(size, 2)} {unit}"
        size /= 1024
    return f"{size} TB"


@dataclass(frozen=True)
class ArchiveReport:
    entry_count: int
    compressed_size: int
    uncompressed_size: int

    @property
    def compression_ratio(self) -> float:
        if self.compressed_size <= 0:
            return 0.0
        return self.uncompressed_size / self.compressed_size


def find_archives(directory: Path, pattern: str) -> list[Path]:
    return sorted(p for p in directory.glob(pattern) if p.is_file())


def validate_archive(
    path: Path,
    max_entries: int = MAX_ARCHIVE_ENTRIES,
    max_uncompressed: int = MAX_UNCOMPRESSED_BYTES,
    max_ratio: float = MAX_COMPRESSION_RATIO,
) -> ArchiveReport:
    """Check the declared entry sizes before anything is extracted.

    Raises ArchiveValidationError when the archive cannot be read or exceeds
    the entry count, total size, or compression ratio limit.
    """
    count = 0
    compressed = 0
    uncompressed = 0

    try:
        with zipfile.ZipFile(path) as zf:
            for info in zf.infolist():
                count += 1
                compressed += info.compress_size
                uncompressed += info.file_size

                if count > max_entries:
                    raise ArchiveValidationError(
                        f"Archive contains too many files (>{max_entries})"
                    )
                if uncompressed > max_uncompressed:
                    raise ArchiveValidationError(
                        f"Archive uncompressed size exceeds limit "
                        f"({format_bytes(uncompressed)} > {format_bytes(max_uncompressed)})"
                    )
    except (zipfile.BadZipFile, OSError) as e:
        raise ArchiveValidationError(f"Cannot read archive: {e}") from e

    report = ArchiveReport(count, compressed, uncompressed)
    if report.compression_ratio > max_ratio:
        raise ArchiveValidationError(
            f"Suspicious compression ratio ({report.compression_ratio:.1f}:1) "
            f"- possible zip bomb"
        )
    return report


def extract_archive(path: Path, target_dir: Path) -> None:
    # zipfile strips absolute prefixes and '..' components from member names.
    with zipfile.ZipFile(path) as zf:
        zf.extractall(target_dir)


def backoff_delay(attempt: int, retry_delay_ms: float) -> float:
    """Seconds to wait after failed attempt ``attempt`` (0-based)."""
    return max(retry_delay_ms, MIN_RETRY_DELAY_MS) * (2 ** attempt) / 1000.0


def extract_with_retry(
    path: Path,
    target_dir: Path,
    retries: int,
    retry_delay_ms: float,
    sleep: Sleep = time.sleep,
) -> ArchiveReport:
    """Validate, then extract with up to ``retries`` retries.

    The last attempt's error propagates unchanged.
    """
    report = validate_archive(path)
    logger.debug(
        f"Archive validation passed: file={path.name} entries={report.entry_count} "
        f"uncompressed={format_bytes(report.uncompressed_size)} "
        f"ratio={report.compression_ratio:.1f}:1"
    )

    target_dir.mkdir(parents=True, exist_ok=True)
    attempt = 0
    while True:
        try:
            extract_archive(path, target_dir)
            return report
        except Exception as e:
            if attempt >= retries:
                raise
            delay = backoff_delay(attempt, retry_delay_ms)
            logger.warning(
                f"Extraction attempt {attempt + 1} of {path.name} failed ({e}), "
                f"retrying in {delay * 1000:.0f}ms"
            )
            sleep(delay)
            attempt += 1


def extract_archives(context: ProcessingContext, sleep: Sleep = time.sleep) -> list[Path]:
    """Extract every matching archive into the staging dir, one at a time.

    Any archive failure aborts the run.
    """
    pattern = context.config.input.archive_pattern
    archives = find_archives(context.input_dir, pattern)
    if not archives:
        raise ArchiveNotFoundError(
            f"No archives found matching pattern: {pattern} in {context.input_dir}"
        )

    total = len(archives)
    logger.info(f"  Found {total} archives to extract")
    processing = context.config.processing

    for i, archive in enumerate(archives, start=1):
        logger.info(f"  Extracting archive {i}/{total}: {archive.name}")
        try:
            extract_with_retry(
                archive,
                context.staging_dir,
                processing.retry_attempts,
                processing.retry_delay_ms,
                sleep=sleep,
            )
        except Exception as e:
            logger.error(f"Archive extraction failed: {archive.name}: {e}")
            raise ArchiveError(f"Failed to extract {archive.name}: {e}") from e
        logger.info(f"  Extracted {archive.name}")

    logger.info(f"  All {total} archives extracted")
    return archives

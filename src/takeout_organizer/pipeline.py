"""Pipeline orchestrator: extract -> discover -> analyze -> organize -> tag -> timestamp."""

from __future__ import annotations

import logging
import os
import shutil
import time
from typing import Callable

from takeout_organizer.analysis import analyze
from takeout_organizer.archive import Sleep, extract_archives, find_archives, format_bytes
from takeout_organizer.errors import EnvironmentValidationError
from takeout_organizer.manifest import RunReport
from takeout_organizer.metadata import ExifToolSession, TagWriter, write_metadata
from takeout_organizer.models import ProcessingContext
from takeout_organizer.mover import organize_files
from takeout_organizer.scanner import Scanner
from takeout_organizer.timestamps import set_timestamps

logger = logging.getLogger(__name__)

TOTAL_PHASES = 6


def validate_environment(context: ProcessingContext) -> None:
    """Pre-flight checks. All problems are reported together."""
    errors: list[str] = []
    input_cfg = context.config.input

    archives = find_archives(context.input_dir, input_cfg.archive_pattern)
    if not archives:
        errors.append(
            f"No archives found matching pattern: {input_cfg.archive_pattern} "
            f"in {context.input_dir}"
        )
    else:
        total = sum(a.stat().st_size for a in archives)
        # Staging holds the expanded archives, output adds one more copy;
        # album entries are hard links.
        required = total * 2
        logger.info(f"  Found {len(archives)} archives ({format_bytes(total)} total)")
        logger.info(f"  Estimated disk space required: {format_bytes(required)}")

    for label, directory in (
        ("staging", context.staging_dir),
        ("output", context.output_dir),
    ):
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Cannot create {label} directory {directory}: {e}")
            continue
        if not os.access(directory, os.W_OK):
            errors.append(f"Cannot write to {label} directory: {directory}")

    if archives and context.output_dir.is_dir():
        free = shutil.disk_usage(context.output_dir).free
        if free < required:
            logger.warning(
                f"Insufficient disk space: required ~{format_bytes(required)}, "
                f"available {format_bytes(free)}"
            )

    if errors:
        raise EnvironmentValidationError(
            "Environment validation failed:\n" + "\n".join(errors)
        )


class Pipeline:
    """Orchestrates the full run over one shared ProcessingContext."""

    def __init__(
        self,
        context: ProcessingContext,
        run_id: str,
        writer_factory: Callable[[], TagWriter] = ExifToolSession,
        sleep: Sleep = time.sleep,
    ) -> None:
        self.context = context
        self.run_id = run_id
        self.writer_factory = writer_factory
        self.sleep = sleep
        self.report = RunReport(run_id, context)

    def _phase(self, number: int, name: str) -> None:
        logger.info(f"Phase {number}/{TOTAL_PHASES}: {name}...")

    def run(self, skip_extraction: bool = False) -> RunReport:
        """Run all stages. Fatal errors propagate; per-item errors are recorded."""
        context = self.context

        logger.info("Validating environment...")
        if not skip_extraction:
            validate_environment(context)

        self._phase(1, "Extracting archives")
        if skip_extraction:
            logger.info("  Skipped, using existing staging directory")
        else:
            extract_archives(context, sleep=self.sleep)

        self._phase(2, "Discovering media files")
        Scanner(context).scan()

        self._phase(3, "Analyzing duplicates")
        self.report.record_duplicates(analyze(context))

        self._phase(4, "Organizing files")
        organize_files(context)

        self._phase(5, "Writing metadata tags")
        if context.config.exif.any_enabled:
            write_metadata(context, self.writer_factory)
        else:
            logger.info("  Skipped, all tag toggles disabled")

        self._phase(6, "Setting file timestamps")
        set_timestamps(context)

        self.report.finalize()
        return self.report


"""CLI argument parsing, validation, and main entry point."""

from __future__ import annotations

import argparse
import logging
import subprocess
import sys
from dataclasses import replace
from pathlib import Path

from takeout_organizer import __version__
from takeout_organizer.archive import format_bytes
from takeout_organizer.config import OrganizerConfig, load_config
from takeout_organizer.errors import ConfigError, TakeoutError
from takeout_organizer.logging_setup import setup_logging
from takeout_organizer.manifest import RunReport
from takeout_organizer.models import ProcessingContext

logger = logging.getLogger("takeout_organizer")

MAX_ERRORS_SHOWN = 10


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="takeout-organizer",
        description="Organize exported photo archives by year and album, "
                    "writing capture metadata into each file.",
    )
    parser.add_argument(
        "--input", "-i",
        default=None,
        help="Directory containing the archive files.",
    )
    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Output directory for organized photos.",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="JSON config file (default: takeout-config.json or config/default.json).",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Number of files processed in parallel.",
    )
    parser.add_argument(
        "--no-hard-links",
        action="store_true",
        help="Copy album entries instead of hard-linking them.",
    )
    parser.add_argument(
        "--skip-extraction",
        action="store_true",
        help="Reuse the existing staging directory instead of extracting archives.",
    )
    parser.add_argument(
        "--log-dir",
        default=None,
        help="Directory for log files and the run report.",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG-level) console output.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def _apply_overrides(config: OrganizerConfig, args: argparse.Namespace) -> OrganizerConfig:
    processing = config.processing
    if args.concurrency is not None:
        if args.concurrency < 1:
            raise ConfigError("--concurrency must be >= 1")
        processing = replace(processing, concurrency=args.concurrency)
    if args.no_hard_links:
        processing = replace(processing, use_hard_links=False)

    logging_cfg = config.logging
    if args.log_dir:
        logging_cfg = replace(logging_cfg, log_dir=args.log_dir)
    if args.verbose:
        logging_cfg = replace(logging_cfg, level="debug")

    return replace(config, processing=processing, logging=logging_cfg)


def _check_exiftool() -> None:
    """Verify exiftool is installed and on PATH."""
    try:
        subprocess.run(
            ["exiftool", "-ver"],
            capture_output=True,
            check=True,
        )
    except (subprocess.CalledProcessError, FileNotFoundError):
        print("Error: exiftool is not installed or not in PATH.", file=sys.stderr)
        print("Install it with: sudo apt install libimage-exiftool-perl", file=sys.stderr)
        print("Or disable all tag writing in the exif config group.", file=sys.stderr)
        raise SystemExit(1)


def _log_summary(context: ProcessingContext, report: RunReport) -> None:
    stats = context.stats
    logger.info("=" * 60)
    logger.info("Summary:")
    logger.info(f"  Processed:        {stats.processed_files}")
    logger.info(f"  Failed:           {stats.failed_files}")
    if stats.exif_failures:
        logger.info(f"  Tag failures:     {stats.exif_failures}")
    if stats.timestamp_failures:
        logger.info(f"  Time failures:    {stats.timestamp_failures}")
    logger.info(f"  Duplicate groups: {stats.duplicate_groups}")
    logger.info(f"  Albums:           {stats.album_count}")
    logger.info(f"  Year range:       {stats.year_min}-{stats.year_max}")
    logger.info(f"  Total size:       {format_bytes(stats.total_size)}")
    logger.info(f"  By year:          {context.by_year_dir}")
    logger.info(f"  By album:         {context.by_album_dir}")

    errors = report.errors()
    if errors:
        logger.info(f"  Errors (showing first {min(len(errors), MAX_ERRORS_SHOWN)}):")
        for filename, error in errors[:MAX_ERRORS_SHOWN]:
            logger.info(f"    {filename}: {error}")
        if len(errors) > MAX_ERRORS_SHOWN:
            logger.info(f"    ... and {len(errors) - MAX_ERRORS_SHOWN} more")
    logger.info("=" * 60)


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    try:
        config = load_config(args.config, input_dir=args.input, output_dir=args.output)
        config = _apply_overrides(config, args)
    except ConfigError as e:
        raise SystemExit(f"Error: {e}")

    context = ProcessingContext.from_config(config)
    run_id = setup_logging(
        level=config.logging.level,
        log_dir=context.log_dir,
        console=config.logging.console,
        file=config.logging.file,
    )

    if config.exif.any_enabled:
        _check_exiftool()

    logger.info("=" * 60)
    logger.info(f"takeout-organizer v{__version__}")
    logger.info(f"  Input:       {context.input_dir}")
    logger.info(f"  Staging:     {context.staging_dir}")
    logger.info(f"  Output:      {context.output_dir}")
    logger.info(f"  Concurrency: {config.processing.concurrency}")
    logger.info(f"  Hard links:  {config.processing.use_hard_links}")
    logger.info("=" * 60)

    from takeout_organizer.pipeline import Pipeline

    try:
        report = Pipeline(context, run_id).run(skip_extraction=args.skip_extraction)
    except TakeoutError as e:
        logger.error(f"Fatal error: {e}")
        raise SystemExit(1)

    _log_summary(context, report)
    raise SystemExit(1 if context.stats.failed_files > 0 else 0)

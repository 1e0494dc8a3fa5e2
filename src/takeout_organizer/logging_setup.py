"""Logging configuration for takeout-organizer."""

import logging
import sys
from datetime import datetime
from pathlib import Path

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_level(level: str) -> int:
    return _LEVELS.get(level.lower(), logging.INFO)


def setup_logging(
    level: str = "info",
    log_dir: Path = Path("logs"),
    console: bool = True,
    file: bool = True,
) -> str:
    """Configure the takeout_organizer logger.

    Console output goes to stdout at ``level``. With ``file`` enabled,
    ``processing.log`` receives every record and ``errors.log`` only ERROR
    and above. Handlers from a previous call are replaced.

    Returns the run_id string (e.g. 'takeout-organizer_20260216_143022') so
    the run report can use the same timestamp.
    """
    run_id = f"takeout-organizer_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

    root = logging.getLogger("takeout_organizer")
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    if console:
        stream = logging.StreamHandler(sys.stdout)
        stream.setLevel(parse_level(level))
        stream.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)-7s] %(message)s",
            datefmt="%H:%M:%S",
        ))
        root.addHandler(stream)

    if file:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_format = logging.Formatter(
            "%(asctime)s [%(levelname)-7s] %(name)s: %(message)s",
        )

        fh = logging.FileHandler(log_dir / "processing.log", mode="a", encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(file_format)
        root.addHandler(fh)

        eh = logging.FileHandler(log_dir / "errors.log", mode="a", encoding="utf-8")
        eh.setLevel(logging.ERROR)
        eh.setFormatter(file_format)
        root.addHandler(eh)

    return run_id

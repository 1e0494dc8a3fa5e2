"""JSON run report: stats, duplicate groups, and the outcome of every item."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from takeout_organizer.models import DuplicateGroup, MediaItem, ProcessingContext

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"


def _path(value: Optional[Path]) -> Optional[str]:
    return str(value) if value is not None else None


def _item_to_dict(item: MediaItem) -> dict:
    d: dict = {
        "id": item.id,
        "original_path": str(item.original_path),
        "filename": item.filename,
        "status": item.status.value,
        "year_path": _path(item.year_path),
        "album_path": _path(item.album_path),
    }
    if item.source_folder:
        d["source_folder"] = item.source_folder
    if item.error is not None:
        d["error"] = item.error
    return d


class RunReport:
    """Collects the outcome of a run and writes it as one JSON document."""

    def __init__(self, run_id: str, context: ProcessingContext) -> None:
        self.run_id = run_id
        self.context = context
        self.duplicate_groups: dict[str, DuplicateGroup] = {}

    def record_duplicates(self, groups: dict[str, DuplicateGroup]) -> None:
        self.duplicate_groups = groups

    def errors(self) -> list[tuple[str, str]]:
        """(filename, error) for every item that carries an error."""
        return [
            (item.filename, item.error)
            for item in self.context.files.values()
            if item.error is not None
        ]

    def finalize(self, log_dir: Optional[Path] = None) -> Path:
        """Write the report and return its path."""
        ctx = self.context
        log_dir = log_dir or ctx.log_dir or ctx.output_dir
        report = {
            "schema_version": SCHEMA_VERSION,
            "run_id": self.run_id,
            "timestamp": datetime.now().isoformat(timespec="seconds"),
            "directories": {
                "input": str(ctx.input_dir),
                "staging": str(ctx.staging_dir),
                "output": str(ctx.output_dir),
                "by_year": str(ctx.by_year_dir),
                "by_album": str(ctx.by_album_dir),
            },
            "stats": ctx.stats.as_dict(),
            "duplicate_groups": {
                key: group.filenames for key, group in self.duplicate_groups.items()
            },
            "items": [_item_to_dict(item) for item in ctx.files.values()],
        }

        log_dir.mkdir(parents=True, exist_ok=True)
        report_path = log_dir / f"{self.run_id}.json"
        report_path.write_text(
            json.dumps(report, indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )

        logger.info(f"Report: {report_path}")
        return report_path

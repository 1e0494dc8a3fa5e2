"""Duplicate grouping and year-range statistics."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable

from takeout_organizer.dates import is_valid_year, utc_year
from takeout_organizer.models import DuplicateGroup, MediaItem, ProcessingContext
from takeout_organizer.sidecar import capture_timestamp

logger = logging.getLogger(__name__)


def group_duplicates(items: Iterable[MediaItem]) -> dict[str, DuplicateGroup]:
    """Group items by base filename; only groups with several variants are kept."""
    buckets: dict[str, list[MediaItem]] = defaultdict(list)
    for item in items:
        buckets[item.duplicate_group or item.filename].append(item)

    groups: dict[str, DuplicateGroup] = {}
    for key, members in buckets.items():
        if len(members) > 1:
            members.sort(key=lambda m: m.duplicate_index)
            groups[key] = DuplicateGroup(base_filename=key, items=members)
    return groups


def compute_year_range(items: Iterable[MediaItem]) -> tuple[int, int]:
    """(min, max) of valid capture years, or (0, 0) when there are none."""
    years = []
    for item in items:
        if item.metadata is None:
            continue
        ts = capture_timestamp(item.metadata)
        if ts is None:
            continue
        year = utc_year(ts)
        if is_valid_year(year):
            years.append(year)

    if not years:
        return 0, 0
    return min(years), max(years)


def analyze(context: ProcessingContext) -> dict[str, DuplicateGroup]:
    items = list(context.files.values())

    groups = group_duplicates(items)
    for group in groups.values():
        logger.info(
            f"  Duplicate group: base={group.base_filename} "
            f"count={len(group.items)} files={group.filenames}"
        )
    context.stats.duplicate_groups = len(groups)
    logger.info(f"  Found {len(groups)} duplicate groups")

    year_min, year_max = compute_year_range(items)
    context.stats.year_min = year_min
    context.stats.year_max = year_max
    if year_min:
        logger.info(f"  Year range: {year_min}-{year_max}")
    else:
        logger.warning("Could not determine year range")

    return groups

"""Bounded worker pool for the per-item pipeline stages."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Sequence

from takeout_organizer.config import PROGRESS_EVERY
from takeout_organizer.models import MediaItem

logger = logging.getLogger(__name__)


def run_pool(
    items: Sequence[MediaItem],
    task: Callable[[MediaItem], None],
    concurrency: int,
    label: str,
    progress_every: int = PROGRESS_EVERY,
) -> int:
    """Run ``task`` once per item with at most ``concurrency`` in flight.

    Blocks until every task has settled. Tasks record their own per-item
    failures; anything that still escapes is logged against the item and
    does not stop the batch. Returns the number of tasks that raised.
    """
    total = len(items)
    if total == 0:
        return 0

    escaped = 0
    done = 0
    with ThreadPoolExecutor(max_workers=max(1, concurrency)) as pool:
        futures = {pool.submit(task, item): item for item in items}
        for future in as_completed(futures):
            item = futures[future]
            try:
                future.result()
            except Exception as e:
                escaped += 1
                item.record_error(str(e))
                logger.exception(f"{label}: unexpected error for {item.filename}")

            done += 1
            if done % progress_every == 0:
                logger.info(f"  {label}: {done}/{total} ({done * 100 // total}%)")

    return escaped

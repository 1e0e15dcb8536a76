"""Age-based pruning of stored samples."""

from __future__ import annotations

import logging
from typing import Optional

from datastore.sample_store import SampleStore

logger = logging.getLogger(__name__)

DEFAULT_KEEP_DAYS = 30


class Retention:

    def __init__(self, store: SampleStore, default_keep_days: int = DEFAULT_KEEP_DAYS) -> None:
        self.store = store
        self.default_keep_days = default_keep_days

    def purge(self, keep_days: Optional[int] = None) -> int:
        """Delete samples older than ``keep_days`` days and return how many went."""
        days = self.default_keep_days if keep_days is None else keep_days
        if days < 0:
            raise ValueError(f"keep_days must not be negative, got {days}.")

        removed = self.store.delete_older_than(days)
        logger.info("Purged old samples", extra={"keep_days": days, "row_count": removed})
        return removed

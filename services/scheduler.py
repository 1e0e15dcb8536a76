"""Periodic sample-and-store loop."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from threading import Event
from typing import Callable, Optional

from datastore.sample_store import SampleStore
from errors import SamplingError, StorageError
from services.sampler import CapacitySampler

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 60


def capture_time() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


class SamplingService:
    """Samples capacity, stores the batch, then waits for the next cycle.

    Sampling and storage failures are logged and retried on the following
    cycle; the last error is raised once ``max_consecutive_failures`` cycles in
    a row have failed. ``0`` fails on the first error.
    """

    def __init__(
        self,
        sampler: CapacitySampler,
        store: SampleStore,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        max_consecutive_failures: int = 3,
        clock: Callable[[], datetime] = capture_time,
    ) -> None:
        self.sampler = sampler
        self.store = store
        self.interval_seconds = interval_seconds
        self.max_consecutive_failures = max_consecutive_failures
        self._clock = clock
        self._stop = Event()
        self._failures = 0

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    def run_once(self) -> int:
        """Run one sample-and-store cycle and return the number of rows stored."""
        captured_at = self._clock()
        records = self.sampler.sample(captured_at)
        inserted = self.store.insert_batch(records, captured_at)
        logger.info(
            "%s recorded %d entries.",
            captured_at.isoformat(),
            inserted,
            extra={"row_count": inserted},
        )
        return inserted

    def run_forever(self, max_cycles: Optional[int] = None) -> None:
        """Loop until :meth:`stop` is called or ``max_cycles`` cycles have run."""
        cycles = 0
        while not self._stop.is_set():
            try:
                self.run_once()
            except (SamplingError, StorageError) as exc:
                self._failures += 1
                if self._failures > self.max_consecutive_failures:
                    logger.error(
                        "Giving up after repeated failures",
                        extra={"failures": self._failures, "reason": str(exc)},
                    )
                    raise
                logger.warning(
                    "Sampling cycle failed, retrying next cycle",
                    extra={"failures": self._failures, "reason": str(exc)},
                )
            else:
                self._failures = 0

            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            self._stop.wait(self.interval_seconds)

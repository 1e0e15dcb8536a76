"""Growth trend reports computed from two stored snapshots."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from datastore.sample_store import SampleStore
from errors import InsufficientData, ReportError
from models.records import CapacityRecord

logger = logging.getLogger(__name__)

_HUNDRED = Decimal(100)
_TWO_PLACES = Decimal("0.01")
_MILLIS_PER_HOUR = Decimal(60 * 60 * 1000)


@dataclass
class TrendRow:
    """Growth of a single mount point between the two snapshots."""

    mount_point: str
    used_kb: int
    free_kb: int
    used_percent: int
    change_kb: int
    growth_percent: Optional[Decimal]


@dataclass
class ReportResult:
    hostname: str
    then: datetime
    now: datetime
    elapsed_hours: Decimal
    window_hours: Decimal
    window_shortened: bool = False
    rows: List[TrendRow] = field(default_factory=list)


def elapsed_hours(then: datetime, now: datetime) -> Decimal:
    """Whole milliseconds between the snapshots as hours, rounded half-up to 2 places."""
    millis = (now - then) // timedelta(milliseconds=1)
    return (Decimal(millis) / _MILLIS_PER_HOUR).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def growth_percent(used_then: int, used_now: int) -> Optional[Decimal]:
    """Relative growth in percent, or ``None`` when either value is not positive."""
    if used_then <= 0 or used_now <= 0:
        return None
    ratio = Decimal(used_now) / Decimal(used_then)
    return ((ratio - 1) * _HUNDRED).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def used_percent(percentage_used: Decimal) -> int:
    return int((percentage_used * _HUNDRED).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def build_row(then: CapacityRecord, now: CapacityRecord) -> TrendRow:
    return TrendRow(
        mount_point=now.mount_point,
        used_kb=now.used_space_kb,
        free_kb=now.free_space_kb,
        used_percent=used_percent(now.percentage_used),
        change_kb=now.used_space_kb - then.used_space_kb,
        growth_percent=growth_percent(then.used_space_kb, now.used_space_kb),
    )


class TrendReporter:
    """Compares the newest snapshot of a host with one taken a window earlier."""

    def __init__(self, store: SampleStore) -> None:
        self.store = store

    def report(self, hostname: str, window_hours: Decimal) -> ReportResult:
        window_hours = Decimal(window_hours)
        if not window_hours.is_finite() or window_hours < 0:
            raise ReportError(f"Report window must be a non-negative number of hours, got {window_hours}.")

        if not self.store.has_schema():
            raise InsufficientData(hostname)

        try:
            cutoff = self.store.current_time() - timedelta(hours=float(window_hours))
        except OverflowError:
            # Window reaches past the earliest representable time.
            then = None
        else:
            then = self.store.latest_capture(hostname, before=cutoff)
        now = self.store.latest_capture(hostname)

        window_shortened = False
        if then is None and now is not None:
            then = self.store.earliest_capture(hostname)
            window_shortened = True
            logger.info(
                "No sample older than %s hours, using oldest sample instead",
                window_hours,
                extra={"hostname": hostname},
            )

        if then is None or now is None:
            raise InsufficientData(hostname)

        snapshot_then = self.store.query_by_host_and_time(hostname, then)
        snapshot_now = self.store.query_by_host_and_time(hostname, now)

        rows = [
            build_row(snapshot_then[mount_point], snapshot_now[mount_point])
            for mount_point in sorted(snapshot_then)
            if mount_point in snapshot_now
        ]

        return ReportResult(
            hostname=hostname,
            then=then,
            now=now,
            elapsed_hours=elapsed_hours(then, now),
            window_hours=window_hours,
            window_shortened=window_shortened,
            rows=rows,
        )

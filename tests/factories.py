"""Shared builders for test data."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from models.records import CapacityRecord

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Mutable clock so tests can move the store's notion of "now"."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_record(
    mount_point: str = "/",
    used: int = 100,
    total: int = 1000,
    hostname: str = "web-1",
    file_system_name: str = "/dev/sda1",
    percentage: str | None = None,
) -> CapacityRecord:
    free = max(total - used, 0)
    percentage_used = (
        Decimal(percentage) if percentage is not None else (Decimal(used) / Decimal(total)).quantize(Decimal("0.01"))
    )
    return CapacityRecord(
        hostname=hostname,
        file_system_name=file_system_name,
        total_space_kb=total,
        used_space_kb=used,
        free_space_kb=free,
        percentage_used=percentage_used,
        mount_point=mount_point,
    )

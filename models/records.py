"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass(slots=True)
class CapacityRecord:
    """One filesystem's capacity figures as reported by ``df -kP``."""

    hostname: str
    file_system_name: str
    total_space_kb: int
    used_space_kb: int
    free_space_kb: int
    percentage_used: Decimal
    mount_point: str
    captured_at: Optional[datetime] = None
    id: Optional[int] = None

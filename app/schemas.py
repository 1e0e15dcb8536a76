"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CapacitySample(BaseModel):
    """A stored filesystem capacity sample."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    hostname: str
    file_system_name: str
    total_space_kb: int = Field(..., ge=0)
    used_space_kb: int = Field(..., ge=0)
    free_space_kb: int = Field(..., ge=0)
    percentage_used: Decimal = Field(..., ge=0)
    mount_point: str
    captured_at: Optional[datetime] = None


class SnapshotResponse(BaseModel):
    hostname: str
    captured_at: datetime
    samples: List[CapacitySample] = Field(default_factory=list)


class TrendRowResponse(BaseModel):
    """Growth of a mount point between the two compared snapshots."""

    model_config = ConfigDict(from_attributes=True)

    mount_point: str
    used_kb: int
    free_kb: int
    used_percent: int
    change_kb: int
    growth_percent: Optional[Decimal] = Field(
        default=None, description="Null when either snapshot reports zero used space."
    )


class ReportResponse(BaseModel):
    """Full growth report for one host."""

    model_config = ConfigDict(from_attributes=True)

    hostname: str
    then: datetime
    now: datetime
    elapsed_hours: Decimal
    window_hours: Decimal
    window_shortened: bool = False
    rows: List[TrendRowResponse] = Field(default_factory=list)

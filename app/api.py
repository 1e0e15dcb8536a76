"""HTTP route definitions for the service."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import CapacitySample, ReportResponse, SnapshotResponse
from datastore.sample_store import SampleStore, build_default_store
from errors import InsufficientData, ReportError, StorageError
from services.reporter import TrendReporter
from settings import get_settings

router = APIRouter()


def get_store() -> SampleStore:
    return build_default_store()


@router.get(
    "/hosts/{hostname}/report",
    response_model=ReportResponse,
    summary="Report filesystem growth for a host over a time window.",
)
def get_report(
    hostname: str,
    hours: Optional[Decimal] = Query(
        None, description="Window in hours (defaults to DISKFREE_REPORT_HOURS or 24)."
    ),
    store: SampleStore = Depends(get_store),
) -> ReportResponse:
    window = get_settings().report_hours if hours is None else hours
    try:
        result = TrendReporter(store).report(hostname, window)
    except InsufficientData as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except ReportError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except StorageError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    return ReportResponse.model_validate(result)


@router.get(
    "/hosts/{hostname}/latest",
    response_model=SnapshotResponse,
    summary="Fetch the most recent snapshot stored for a host.",
)
def get_latest_snapshot(
    hostname: str,
    store: SampleStore = Depends(get_store),
) -> SnapshotResponse:
    try:
        captured_at = store.latest_capture(hostname) if store.has_schema() else None
        if captured_at is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No samples stored for host {hostname!r}.",
            )
        snapshot = store.query_by_host_and_time(hostname, captured_at)
    except StorageError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    samples = [
        CapacitySample.model_validate(snapshot[mount_point]) for mount_point in sorted(snapshot)
    ]
    return SnapshotResponse(hostname=hostname, captured_at=captured_at, samples=samples)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}

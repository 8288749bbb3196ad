"""
Metrics API routes.

- Combined external dataset + annotation metrics
- External dataset maintenance
- Live growth since checkpoints
- Daily time series (json or msgpack), backfill and snapshot triggers
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import msgpack
from fastapi import APIRouter, Body, HTTPException, Query
from fastapi.responses import JSONResponse, Response

from annotrack.catalog.categories import default_catalog

from ..dependencies import CsrfDep, ServicesDep

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/metrics/combined")
async def combined_metrics_api(services: ServicesDep) -> dict[str, Any]:
    """Get {class: {modality: {kaggle_images, ls_images, ls_annotations, total_images}}}."""
    return services.combined.get_combined_metrics()


@router.get("/api/kaggle")
async def get_external_dataset_api(services: ServicesDep) -> dict[str, Any]:
    """Get the external dataset."""
    return services.combined.get_dataset()


@router.put("/api/kaggle/{category}")
async def update_external_dataset_api(
    category: str,
    services: ServicesDep,
    _csrf: CsrfDep,
    data: dict[str, dict[str, dict[str, Any]]] = Body(...),
) -> dict[str, Any]:
    """Replace one category of the external dataset.

    Raises:
        HTTPException: 400 if the category is unknown.
    """
    if category not in default_catalog.names:
        raise HTTPException(status_code=400, detail=f"Unknown category: {category}")
    return {"success": True, "data": services.combined.update_dataset_category(category, data)}


@router.get("/api/growth")
async def growth_api(
    services: ServicesDep,
    threshold: float = Query(default=20.0, description="Minimum growth percentage"),
) -> dict[str, Any]:
    """Get live (class, modality) growth at or above a threshold.

    Fetches every project's tasks from the annotation tool.
    """
    metrics = await asyncio.to_thread(services.growth.calculate, threshold)
    return {"success": True, "threshold": threshold, "count": len(metrics), "metrics": metrics}


@router.get("/api/time-series")
async def time_series_api(
    services: ServicesDep,
    range: str | None = None,
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    format: str = "json",
) -> Response:
    """Get daily (class, modality) series with day-over-day deltas.

    Args:
        range: Preset range - "24h", "7d" (default) or "30d".
        start_date: Custom range start (YYYY-MM-DD); used together with end_date.
        end_date: Custom range end (YYYY-MM-DD).
        format: Response format - "json" (default) or "msgpack".

    Raises:
        HTTPException: 400 if a date or the format is invalid.
    """
    if format not in ("json", "msgpack"):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid format: {format}. Must be 'json' or 'msgpack'",
        )

    try:
        data = services.time_series.query(preset=range, start=start_date, end=end_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None

    if format == "msgpack":
        return Response(content=msgpack.packb(data), media_type="application/x-msgpack")
    return JSONResponse(content=data)


@router.post("/api/time-series/backfill")
async def time_series_backfill_api(services: ServicesDep, _csrf: CsrfDep) -> dict[str, Any]:
    """Fill missing days of the time series from project history."""
    return await asyncio.to_thread(services.time_series.backfill)


@router.post("/api/time-series/snapshot")
async def time_series_snapshot_api(services: ServicesDep, _csrf: CsrfDep) -> dict[str, Any]:
    """Record today's totals now."""
    snapshot = await asyncio.to_thread(services.time_series.store_snapshot)
    return {"success": True, **snapshot}

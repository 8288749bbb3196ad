"""Modality assignment, scheduler, application log and health API routes."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response

from annotrack import __version__
from annotrack.exceptions import SchedulerAlreadyRunningError
from annotrack.logger import CLIENT_LEVELS, MAX_RECENT_LOGS, recent_logs
from annotrack.utils import utc_now_iso

from ..dependencies import CsrfDep, ServicesDep
from ..models.requests import ClientLogEntry, ModalityUpdateRequest, SchedulerStartRequest

frontend_logger = logging.getLogger("annotrack.frontend")

router = APIRouter()


@router.get("/api/modalities")
async def get_modalities_api(services: ServicesDep) -> dict[str, str]:
    """Get {project id: modality} for every assigned project."""
    return services.modalities.get_all()


@router.put("/api/modalities/{project_id}")
async def update_modality_api(project_id: int, body: ModalityUpdateRequest, services: ServicesDep, _csrf: CsrfDep) -> dict[str, Any]:
    """Assign a modality to a project.

    Invalid modalities are rejected with 400 and nothing is written.
    """
    services.modalities.set(project_id, body.modality)
    return {"success": True, "projectId": str(project_id), "modality": body.modality}


@router.get("/api/scheduler/status")
async def scheduler_status_api(services: ServicesDep) -> dict[str, Any]:
    """Get the daily refresh schedule and last/next run times."""
    return services.scheduler.get_status()


@router.post("/api/scheduler/start")
async def scheduler_start_api(services: ServicesDep, _csrf: CsrfDep, body: SchedulerStartRequest | None = None) -> dict[str, Any]:
    """Start the daily refresh.

    Raises:
        HTTPException: 409 if the scheduler is already running.
    """
    body = body or SchedulerStartRequest()
    try:
        success = services.scheduler.start(body.hour, body.minute)
    except SchedulerAlreadyRunningError as e:
        raise HTTPException(status_code=409, detail=str(e)) from None
    return {"success": success}


@router.post("/api/scheduler/stop")
async def scheduler_stop_api(services: ServicesDep, _csrf: CsrfDep) -> dict[str, Any]:
    """Stop the daily refresh; success is False when it was not running."""
    return {"success": services.scheduler.stop()}


@router.post("/api/scheduler/trigger")
async def scheduler_trigger_api(services: ServicesDep, _csrf: CsrfDep) -> dict[str, Any]:
    """Run a refresh now in the background."""
    success = services.scheduler.trigger_manual()
    return {"success": success, "message": "Manual refresh started in background"}


@router.get("/api/scheduler/logs")
async def scheduler_logs_api(services: ServicesDep, lines: int = Query(default=50, ge=1, le=5000)) -> dict[str, Any]:
    """Get the last lines of the scheduler log."""
    return {"logs": services.scheduler.get_logs(lines)}


@router.get("/api/health")
async def health_api() -> dict[str, Any]:
    """Liveness check."""
    return {"status": "ok", "version": __version__, "timestamp": utc_now_iso()}


@router.get("/api/logs/recent")
async def recent_logs_api(
    level: str | None = Query(default=None, description="debug, info, warn, error or all"),
    source: str | None = Query(default=None, description="Substring of the log source"),
    limit: int = Query(default=100, ge=1, le=MAX_RECENT_LOGS),
) -> dict[str, Any]:
    """Get the newest application log entries, newest first."""
    entries = recent_logs.entries(level=level, source=source, limit=limit)
    return {"logs": entries, "total": len(entries), "filtered": bool((level and level != "all") or source)}


@router.get("/api/logs/stats")
async def log_stats_api() -> dict[str, Any]:
    """Count buffered log entries per level, overall and for the last hour."""
    entries = recent_logs.entries()
    hour_ago = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    last_hour = [e for e in entries if e["timestamp"] > hour_ago]

    def by_level(selected: list[dict[str, Any]]) -> dict[str, int]:
        return {name: sum(1 for e in selected if e["level"] == name) for name in CLIENT_LEVELS}

    return {
        "total": len(entries),
        "lastHour": len(last_hour),
        "byLevel": by_level(entries),
        "lastHourByLevel": by_level(last_hour),
    }


@router.get("/api/logs/download")
async def download_logs_api(
    format: str = Query(default="json"),
    level: str | None = Query(default=None),
    source: str | None = Query(default=None),
) -> Response:
    """Download buffered log entries as a JSON or plain-text attachment.

    Raises:
        HTTPException: 400 if the format is not 'json' or 'text'.
    """
    if format not in ("json", "text"):
        raise HTTPException(status_code=400, detail=f"Invalid format: {format}. Must be 'json' or 'text'")

    entries = recent_logs.entries(level=level, source=source)
    stamp = utc_now_iso().replace(":", "-").replace(".", "-")
    if format == "json":
        content = json.dumps(entries, ensure_ascii=False, indent=2)
        media_type, suffix = "application/json", "json"
    else:
        content = "\n".join(
            f"[{e['timestamp']}] [{e['level'].upper()}] [{e['source']}] {e['message']} {json.dumps(e['context'])}" for e in entries
        )
        media_type, suffix = "text/plain", "txt"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename=logs-{stamp}.{suffix}"},
    )


@router.post("/api/logs/frontend")
async def frontend_logs_api(body: ClientLogEntry | list[ClientLogEntry], _csrf: CsrfDep) -> dict[str, Any]:
    """Record log entries reported by the browser client."""
    entries = body if isinstance(body, list) else [body]
    for entry in entries:
        frontend_logger.log(
            CLIENT_LEVELS.get(entry.level, logging.INFO),
            entry.message,
            extra={
                "log_source": f"frontend:{entry.source or 'unknown'}",
                "log_timestamp": entry.timestamp,
                "context": entry.context,
            },
        )
    return {"success": True, "received": len(entries)}

"""Notification and category API routes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from ..dependencies import CsrfDep, ServicesDep

router = APIRouter()


@router.get("/api/notifications")
async def get_notifications_api(services: ServicesDep) -> list[dict[str, Any]]:
    """Get all stored notifications, oldest first."""
    return services.notifications.get_notifications()


@router.delete("/api/notifications/{index}")
async def dismiss_notification_api(index: int, services: ServicesDep, _csrf: CsrfDep) -> dict[str, Any]:
    """Dismiss the notification at a list position.

    Returns:
        {"success": False} when the index is out of range.
    """
    return {"success": services.notifications.dismiss_notification(index)}


@router.get("/api/categories")
async def get_categories_api(services: ServicesDep) -> dict[str, Any]:
    """Get every category with its history length and latest entry."""
    return services.aggregator.get_all_categories()


@router.get("/api/categories/{category}/history")
async def get_category_history_api(category: str, services: ServicesDep) -> dict[str, Any]:
    """Get a category's full history."""
    return {"category": category, "history": services.aggregator.get_category_history(category)}


@router.get("/api/categories/{category}/latest")
async def get_category_latest_api(category: str, services: ServicesDep) -> dict[str, Any]:
    """Get a category's latest metrics ({category, metrics: {}} without history)."""
    latest = services.aggregator.get_category_latest(category)
    if latest is None:
        return {"category": category, "metrics": {}}
    return {"category": category, **latest}

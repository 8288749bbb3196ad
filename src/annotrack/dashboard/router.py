"""
annotrack dashboard APIRouter aggregation.

This module aggregates all route handlers from the routes package.
"""

from __future__ import annotations

from fastapi import APIRouter

from .dependencies import configure_data_dir, configure_project_source
from .routes import admin_router, checkpoint_router, metrics_router, notification_router, project_router

router = APIRouter()
router.include_router(project_router)
router.include_router(checkpoint_router)
router.include_router(notification_router)
router.include_router(metrics_router)
router.include_router(admin_router)

__all__ = ["router", "configure_data_dir", "configure_project_source"]

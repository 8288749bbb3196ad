"""
annotrack dashboard routes.

This package contains REST API route handlers organized by resource:
- project_routes: project listing, history and refresh
- checkpoint_routes: checkpoint CRUD
- notification_routes: notifications and categories
- metrics_routes: combined metrics, external dataset, growth, time series
- admin_routes: modality assignments, scheduler, health
"""

from .admin_routes import router as admin_router
from .checkpoint_routes import router as checkpoint_router
from .metrics_routes import router as metrics_router
from .notification_routes import router as notification_router
from .project_routes import router as project_router

__all__ = ["admin_router", "checkpoint_router", "metrics_router", "notification_router", "project_router"]

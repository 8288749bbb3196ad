"""
FastAPI dependency injection for the annotrack dashboard.

This module provides reusable dependencies for:
- The wired pipeline components (Services) sharing one document store
- CSRF header verification on mutating endpoints
- Path parameter validation (categories, modalities)
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import Depends, Header, HTTPException
from fastapi import Path as PathParam

from annotrack.catalog.modality import MODALITIES
from annotrack.client import LabelStudioClient, ProjectSource
from annotrack.config import get_data_dir, get_settings
from annotrack.services import Services, build_services
from annotrack.storage import create_document_store

# Mutable containers for custom configuration
_custom_data_dir: list[str | None] = [None]
_custom_source: list[ProjectSource | None] = [None]


def _get_services() -> Services:
    """Create the pipeline components.

    Returns:
        Services built around the configured data directory and project source
    """
    if _custom_data_dir[0] is not None:
        data_dir = Path(_custom_data_dir[0])
    else:
        data_dir = get_data_dir()

    settings = get_settings()
    source = _custom_source[0] or LabelStudioClient.from_settings(settings)
    store = create_document_store(base_dir=data_dir)
    return build_services(store, source, settings)


# Cached version so every request shares one store and one refresh progress
@lru_cache(maxsize=1)
def _get_cached_services() -> Services:
    """Get cached service instances."""
    return _get_services()


def get_services() -> Services:
    """Get the Services singleton instance."""
    return _get_cached_services()


def configure_data_dir(data_dir: str | None = None) -> None:
    """Configure data directory and reinitialize services.

    Args:
        data_dir: Custom data directory path. If None, uses default.
    """
    _get_cached_services.cache_clear()
    _custom_data_dir[0] = data_dir


def configure_project_source(source: ProjectSource | None = None) -> None:
    """Use a custom project source instead of the annotation tool client.

    Args:
        source: Project source. If None, the client built from settings is used.
    """
    _get_cached_services.cache_clear()
    _custom_source[0] = source


async def verify_csrf_header(x_requested_with: str | None = Header(None, alias="X-Requested-With")) -> None:
    """CSRF protection via custom header check.

    Verifies that requests include the X-Requested-With header, which cannot be set
    by cross-origin requests without CORS preflight.

    Raises:
        HTTPException: 403 if header is missing
    """
    if x_requested_with is None:
        raise HTTPException(status_code=403, detail="Missing X-Requested-With header")


def get_validated_modality(modality: Annotated[str, PathParam(description="Modality tag")]) -> str:
    """Validate modality path parameter.

    Raises:
        HTTPException: 400 if the modality is not supported.
    """
    if modality not in MODALITIES:
        raise HTTPException(status_code=400, detail=f"Invalid modality. Must be one of: {', '.join(MODALITIES)}")
    return modality


# Type aliases for dependency injection
ServicesDep = Annotated[Services, Depends(get_services)]
ValidatedModality = Annotated[str, Depends(get_validated_modality)]
CsrfDep = Annotated[None, Depends(verify_csrf_header)]

"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/directory", status_code=status.HTTP_200_OK)
def health_directory() -> dict:
    """Report which city directory backs pair generation."""
    from ...data.city_repository import InMemoryCityDirectory, get_city_directory
    from ...db.supabase import supabase_configured

    try:
        directory = get_city_directory()
    except Exception as exc:
        return {"service": "directory", "healthy": False, "error": str(exc)}

    if isinstance(directory, InMemoryCityDirectory):
        return {
            "service": "directory",
            "backend": "file",
            "healthy": len(directory) > 0,
            "cities": len(directory),
        }
    return {"service": "directory", "backend": "database", "healthy": supabase_configured()}


@router.get("/health/geocoder", status_code=status.HTTP_200_OK)
def health_geocoder() -> dict:
    """Check the advisory geocode verification service."""
    from ...services.verification.here_client import check_health

    try:
        return {"service": "geocoder", "healthy": check_health()}
    except Exception as e:
        return {"service": "geocoder", "healthy": False, "error": str(e)}

"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...persistence.store import Store
from ..deps import store_dependency

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database(store: Store = Depends(store_dependency)) -> dict:
    """Report which storage backend is active and whether it answers."""
    try:
        areas = store.list_route_areas(active_only=True)
    except Exception as exc:
        return {
            "backend": store.backend,
            "connected": False,
            "error": str(exc),
            "message": f"Storage error: {exc}",
        }
    return {
        "backend": store.backend,
        "connected": True,
        "route_areas": len(areas),
        "message": (
            "In-memory store active. Set BINROUNDS_SUPABASE_URL and BINROUNDS_SUPABASE_KEY to persist data."
            if store.backend == "memory"
            else f"Database connected. Found {len(areas)} active route areas."
        ),
    }

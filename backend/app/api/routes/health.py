from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.api.deps import get_registry
from app.core.config import get_settings
from app.services.grouping_session import SessionRegistry

router = APIRouter()

settings = get_settings()


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/health/live")
def health_live(registry: SessionRegistry = Depends(get_registry)) -> dict:
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "sessions": len(registry),
        "limits": {
            "enumeration_cap": settings.enumeration_cap,
            "enumeration_scan_limit": settings.enumeration_scan_limit,
            "repair_max_attempts": settings.repair_max_attempts,
            "max_items": settings.max_items,
        },
    }

"""Health and service info endpoints. Neither requires a key."""

from typing import Any

from fastapi import APIRouter

from metered_api import __version__
from metered_api.config import get_settings
from metered_api.errors.exceptions import StorageError
from metered_api.models.responses import HealthResponse
from metered_api.storage.base import call_store
from metered_api.storage.manager import get_storage

router = APIRouter(tags=["Health"])


async def _storage_status() -> dict[str, Any]:
    settings = get_settings()
    try:
        return await call_store(
            get_storage().credentials.health_check(),
            settings.storage_timeout_seconds,
        )
    except StorageError as e:
        return {"status": "error", "error": str(e), "latency_ms": None}


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Report whether the credit store is reachable.",
)
async def health_check() -> HealthResponse:
    """
    The service is degraded whenever the credit store is not up, since
    every metered request would then fail with STORAGE_UNAVAILABLE.
    """
    storage = await _storage_status()

    return HealthResponse(
        status="healthy" if storage.get("status") == "up" else "degraded",
        version=__version__,
        components={"api": {"status": "up"}, "storage": storage},
    )


@router.get("/", summary="Service Info")
async def root() -> dict[str, str]:
    return {
        "name": "Metered Items API",
        "version": __version__,
        "backend": get_settings().storage_backend.value,
        "documentation": "/docs",
        "health": "/health",
    }

"""System health endpoints for frontend polling."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ...api.dependencies import get_settings
from ...config import Settings
from ...infra.metrics import get_metrics_client

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/healthz")
def healthcheck(settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    """Return coarse-grained backend readiness information."""

    counters: Dict[str, Any] = get_metrics_client().snapshot().get("counters", {})

    return {
        "status": "ok",
        "environment": settings.environment,
        "entryStore": settings.entries.backend,
        "insightProvider": settings.llm.provider,
        "sharedKeyConfigured": settings.shared_api_key is not None,
        "requireUserId": settings.entries.require_user_id,
        "counters": counters,
    }

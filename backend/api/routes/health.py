"""
Health check endpoints.

Provides endpoints for monitoring application health and readiness.
"""

from fastapi import APIRouter
from pydantic import BaseModel

from shared.config import get_settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    status: str
    storage: str
    ai_service: str
    payments: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the API is running.
    """
    return HealthResponse(status="healthy", version=get_settings().app_version)


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check() -> ReadinessResponse:
    """
    Readiness check endpoint.

    Reports which backends are configured. Does not call external services.
    """
    settings = get_settings()
    supabase_ready = bool(settings.supabase_url and settings.supabase_service_role_key)
    storage_ready = settings.storage_backend == "memory" or supabase_ready

    return ReadinessResponse(
        status="ready" if storage_ready else "degraded",
        storage=settings.storage_backend if storage_ready else "unconfigured",
        ai_service="configured" if settings.gemini_api_key else "unconfigured",
        payments="configured" if (
            settings.apple_shared_secret or settings.google_package_name
        ) else "unconfigured",
    )

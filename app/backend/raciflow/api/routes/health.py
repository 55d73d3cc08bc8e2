"""Liveness endpoint."""

from fastapi import APIRouter

from raciflow.core.config import get_settings

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    """Report that the service is up."""

    settings = get_settings()
    return {"status": "ok", "service": settings.app_name, "environment": settings.app_env}

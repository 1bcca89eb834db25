# auditcast/api/routers/health.py

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from auditcast.api.dependencies import get_connection_registry
from auditcast.config.settings import get_settings
from auditcast.realtime.registry import ConnectionRegistry

router = APIRouter()


@router.get("/health")
async def health(
    request: Request,
    registry: Annotated[ConnectionRegistry, Depends(get_connection_registry)],
):
    """Health check with actor, correlation ID and live connection counts."""
    settings = get_settings()
    return {
        "status": "ok",
        "actor_id": request.state.actor_id,
        "correlation_id": request.state.correlation_id,
        "environment": settings.environment,
        "version": settings.version,
        "broadcast_backend": settings.broadcast_backend,
        "connections": registry.stats(),
    }

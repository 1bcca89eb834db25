# auditcast/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from auditcast.api.dependencies import get_relay
from auditcast.api.middleware import (
    ActorContextMiddleware,
    AuditTriggerMiddleware,
    CorrelationIdMiddleware,
)
from auditcast.api.routers import audit_logs, changes, health, realtime
from auditcast.application.exceptions import ApplicationError, AuditTrailUnavailableError
from auditcast.config.logging import configure_logging
from auditcast.config.settings import get_settings
from auditcast.domain.exceptions import DomainError, DomainValidationError

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_schema:
        from auditcast.infrastructure.database.session import create_schema

        await create_schema()
        logger.info("schema_created")
    relay = get_relay() if settings.broadcast_backend == "redis" else None
    if relay is not None:
        await relay.start()
    try:
        yield
    finally:
        if relay is not None:
            await relay.stop()


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    debug=settings.debug,
    lifespan=lifespan,
)

# Middleware order: last added runs first (outermost). Request flow: CorrelationId -> ActorContext -> AuditTrigger.
app.add_middleware(AuditTriggerMiddleware)
app.add_middleware(ActorContextMiddleware)
app.add_middleware(CorrelationIdMiddleware)


@app.exception_handler(DomainValidationError)
async def domain_validation_error_handler(request, exc: DomainValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.message})


@app.exception_handler(DomainError)
async def domain_error_handler(request, exc: DomainError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(AuditTrailUnavailableError)
async def audit_trail_unavailable_handler(request, exc: AuditTrailUnavailableError):
    return JSONResponse(status_code=503, content={"detail": exc.message})


@app.exception_handler(ApplicationError)
async def application_error_handler(request, exc: ApplicationError):
    return JSONResponse(status_code=500, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request, exc: Exception):
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Routers: /health, /changes, /audit-logs, /ws
app.include_router(health.router)
app.include_router(changes.router, prefix="/changes")
app.include_router(audit_logs.router, prefix="/audit-logs")
app.include_router(realtime.router)

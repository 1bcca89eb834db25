"""FastAPI dependency injection: query executor, connection layer, services, actor, correlation_id."""

import logging
from typing import Annotated, Optional

from fastapi import Depends, Request

from auditcast.application.audit_trail_service import AuditTrailService
from auditcast.audit.query_executor import QueryExecutor
from auditcast.audit.room_resolver import RoomResolver
from auditcast.config.settings import get_settings
from auditcast.infrastructure.cache.redis_client import RedisClient
from auditcast.infrastructure.database.audit_repository_sql import SqlAuditRepository
from auditcast.infrastructure.database.query_executor_sql import EngineQueryExecutor
from auditcast.infrastructure.messaging.redis_relay import RedisPartitionRelay
from auditcast.realtime.broadcaster import ConnectionLayer
from auditcast.realtime.registry import ConnectionRegistry, get_registry

_query_executor: Optional[EngineQueryExecutor] = None
_relay: Optional[RedisPartitionRelay] = None


def get_query_executor() -> QueryExecutor:
    """Return singleton pool-backed query executor."""
    global _query_executor
    if _query_executor is None:
        from auditcast.infrastructure.database.session import engine

        _query_executor = EngineQueryExecutor(engine)
    return _query_executor


def get_connection_registry() -> ConnectionRegistry:
    """Return the process-wide connection registry."""
    return get_registry()


def get_relay() -> RedisPartitionRelay:
    """Return singleton Redis partition relay bound to the local registry."""
    global _relay
    if _relay is None:
        _relay = RedisPartitionRelay(RedisClient(), get_registry())
    return _relay


def get_connection_layer(
    registry: Annotated[ConnectionRegistry, Depends(get_connection_registry)],
) -> ConnectionLayer:
    """Local registry, or the Redis relay when broadcasts must cross processes."""
    if get_settings().broadcast_backend == "redis":
        return get_relay()
    return registry


def get_room_resolver(
    executor: Annotated[QueryExecutor, Depends(get_query_executor)],
) -> RoomResolver:
    settings = get_settings()
    return RoomResolver(
        executor,
        logger=logging.getLogger(__name__),
        anonymous_actor_id=settings.anonymous_actor_id,
        global_partition=settings.global_partition,
    )


def get_audit_trail_service(
    executor: Annotated[QueryExecutor, Depends(get_query_executor)],
    resolver: Annotated[RoomResolver, Depends(get_room_resolver)],
) -> AuditTrailService:
    return AuditTrailService(
        resolver=resolver,
        repository=SqlAuditRepository(executor),
        max_limit=get_settings().audit_log_limit,
        logger=logging.getLogger(__name__),
    )


def get_actor_id(request: Request) -> str:
    """Extract actor_id from request.state (set by middleware)."""
    return request.state.actor_id


def get_correlation_id(request: Request) -> str:
    """Extract correlation_id from request.state (set by middleware)."""
    return getattr(request.state, "correlation_id", "") or ""

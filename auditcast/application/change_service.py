"""Change feed application service — runs after the primary commit. Resolve, persist, broadcast."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Optional, Set

from auditcast.audit.audit_models import AuditRecord, Outcome
from auditcast.audit.audit_recorder import AuditRecorder, build_record
from auditcast.audit.exceptions import ChangeFeedError
from auditcast.audit.query_executor import QueryExecutor
from auditcast.audit.room_resolver import RoomResolver, partition_for
from auditcast.config.settings import get_settings
from auditcast.core.context import partition_ctx
from auditcast.infrastructure.database.audit_repository_sql import SqlAuditRepository
from auditcast.realtime.broadcaster import ChangeBroadcaster, ConnectionLayer

_pending: Set[asyncio.Task] = set()


@dataclass(frozen=True)
class ChangeResult:
    """What happened on each side channel. Callers log and discard it."""

    record: Optional[AuditRecord]
    persisted: Outcome = field(default_factory=Outcome)
    broadcast: Outcome = field(default_factory=Outcome)

    @property
    def ok(self) -> bool:
        return self.record is not None and self.persisted.ok and self.broadcast.ok


class ChangeFeedService:
    """
    Application-layer orchestration only. No HTTP, no FastAPI.
    Failure policy: nothing raises into the caller. Persistence and broadcast
    are independent; a failed insert still broadcasts and a missing
    connection layer still persists.
    """

    def __init__(
        self,
        resolver: RoomResolver,
        recorder: AuditRecorder,
        broadcaster: ChangeBroadcaster,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._resolver = resolver
        self._recorder = recorder
        self._broadcaster = broadcaster
        self._logger = logger or logging.getLogger(__name__)

    async def record_and_broadcast(
        self,
        *,
        actor_id: str,
        action: str,
        entity_type: str,
        entity_id: Any,
        details: Optional[str] = None,
        previous_state: Optional[Any] = None,
        changes: Optional[Any] = None,
        partition_override: Optional[str] = None,
    ) -> ChangeResult:
        try:
            resolved = await self._resolver.resolve(actor_id, partition_override)
            partition_key = partition_for(actor_id, resolved, self._resolver.global_partition)
            record = build_record(
                actor_id=actor_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                partition_key=partition_key,
                details=details,
                previous_state=previous_state,
                changes=changes,
            )
        except Exception as e:
            self._logger.error(
                "change_feed_failed",
                extra={"actor_id": actor_id, "entity_type": entity_type, "error": str(e)},
            )
            error = ChangeFeedError(f"Could not build audit record: {e}")
            return ChangeResult(record=None, persisted=Outcome(error=error), broadcast=Outcome(error=error))

        token = partition_ctx.set(partition_key)
        try:
            persisted = await self._recorder.record(record)
            broadcast = await self._broadcaster.broadcast(partition_key, record.to_change_event())
        finally:
            partition_ctx.reset(token)
        return ChangeResult(record=record, persisted=persisted, broadcast=broadcast)


def build_change_feed_service(
    executor: Optional[QueryExecutor],
    connection_layer: Optional[ConnectionLayer],
    logger: Optional[logging.Logger] = None,
) -> ChangeFeedService:
    """Wire resolver, recorder and broadcaster around one query handle and one connection layer."""
    settings = get_settings()
    logger = logger or logging.getLogger(__name__)
    repository = SqlAuditRepository(executor) if executor is not None else None
    return ChangeFeedService(
        resolver=RoomResolver(
            executor,
            logger=logger,
            anonymous_actor_id=settings.anonymous_actor_id,
            global_partition=settings.global_partition,
        ),
        recorder=AuditRecorder(repository, logger=logger),
        broadcaster=ChangeBroadcaster(connection_layer, logger=logger),
        logger=logger,
    )


async def record_and_broadcast(
    executor: Optional[QueryExecutor],
    connection_layer: Optional[ConnectionLayer],
    *,
    actor_id: str,
    action: str,
    entity_type: str,
    entity_id: Any,
    details: Optional[str] = None,
    previous_state: Optional[Any] = None,
    changes: Optional[Any] = None,
    partition_override: Optional[str] = None,
) -> ChangeResult:
    """
    Single entry point for business code, called after its primary commit.
    executor may be a pool-backed or a transaction-backed QueryExecutor; either may be None.
    """
    service = build_change_feed_service(executor, connection_layer)
    return await service.record_and_broadcast(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
        previous_state=previous_state,
        changes=changes,
        partition_override=partition_override,
    )


def fire_and_forget(coro: Awaitable[ChangeResult]) -> asyncio.Task:
    """Schedule a change-feed call without awaiting it. The task is kept alive until done."""
    task = asyncio.ensure_future(coro)
    _pending.add(task)
    task.add_done_callback(_handle_done)
    return task


def _handle_done(task: asyncio.Task) -> None:
    _pending.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logging.getLogger(__name__).error(
            "change_feed_task_failed", extra={"error": str(exc)}
        )
        return
    result = task.result()
    if isinstance(result, ChangeResult) and not result.ok:
        logging.getLogger(__name__).warning(
            "change_feed_degraded",
            extra={
                "persisted": result.persisted.ok,
                "broadcast": result.broadcast.ok,
            },
        )

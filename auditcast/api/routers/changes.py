"""Changes API router: POST /changes reports a committed change for audit and fan-out."""

import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends

from auditcast.api.dependencies import (
    get_actor_id,
    get_connection_layer,
    get_correlation_id,
    get_query_executor,
)
from auditcast.application.change_service import record_and_broadcast
from auditcast.audit.query_executor import QueryExecutor
from auditcast.domain.schemas.change import ChangeAcceptedResponse, ChangeCreateRequest
from auditcast.domain.validators.change_validator import validate_change_create_request
from auditcast.realtime.broadcaster import ConnectionLayer

router = APIRouter()
logger = logging.getLogger(__name__)


async def report_change(
    executor: QueryExecutor,
    connection_layer: ConnectionLayer,
    actor_id: str,
    body: ChangeCreateRequest,
    correlation_id: str,
) -> None:
    """Background step: run the change feed, log the outcome and drop it."""
    result = await record_and_broadcast(
        executor,
        connection_layer,
        actor_id=actor_id,
        action=body.action.strip(),
        entity_type=body.entity_type.strip(),
        entity_id=body.entity_id,
        details=body.details,
        previous_state=body.previous_state,
        changes=body.changes,
        partition_override=body.partition_override,
    )
    if not result.ok:
        # Degraded side channel only; the reported change itself is already committed.
        logger.warning(
            "change_feed_degraded",
            extra={
                "correlation_id": correlation_id,
                "persist_error": str(result.persisted.error) if result.persisted.error else None,
                "broadcast_error": str(result.broadcast.error) if result.broadcast.error else None,
            },
        )


@router.post("", status_code=202, response_model=ChangeAcceptedResponse)
async def create_change(
    body: ChangeCreateRequest,
    background_tasks: BackgroundTasks,
    actor_id: Annotated[str, Depends(get_actor_id)],
    correlation_id: Annotated[str, Depends(get_correlation_id)],
    executor: Annotated[QueryExecutor, Depends(get_query_executor)],
    connection_layer: Annotated[ConnectionLayer, Depends(get_connection_layer)],
):
    """Accept a change; audit and broadcast run after the response is sent."""
    validate_change_create_request(body)
    background_tasks.add_task(
        report_change, executor, connection_layer, actor_id, body, correlation_id
    )
    return ChangeAcceptedResponse(correlation_id=correlation_id)

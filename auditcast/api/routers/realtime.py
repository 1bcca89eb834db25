"""
WebSocket router for live change notifications.

Clients connect to /ws, then join partitions explicitly. Dashboard sessions
join their tenant; public-order viewers join the order owner's tenant
anonymously. Membership is dropped on disconnect and must be re-requested
after every reconnect.
"""

import json
import logging
from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from auditcast.api.dependencies import get_connection_registry
from auditcast.domain.exceptions import InvalidPartitionKeyError
from auditcast.domain.validators.change_validator import (
    PARTITION_KEY_MAX_LENGTH,
    validate_partition_key,
)
from auditcast.realtime import protocol
from auditcast.realtime.registry import ConnectionRegistry

logger = logging.getLogger(__name__)

router = APIRouter()

INVALID_USER_CLOSE_CODE = 4000
STALE_CONNECTION_CLOSE_CODE = 4001


@router.websocket("/ws")
async def change_feed_socket(
    websocket: WebSocket,
    registry: Annotated[ConnectionRegistry, Depends(get_connection_registry)],
    user_id: Optional[str] = Query(default=None),
):
    """Live change feed. user_id is omitted by anonymous viewers."""
    if user_id is not None:
        user_id = user_id.strip()
        if not user_id or len(user_id) > PARTITION_KEY_MAX_LENGTH:
            await websocket.close(code=INVALID_USER_CLOSE_CODE, reason="Invalid user_id")
            return

    await websocket.accept()
    connection = registry.open(websocket, user_id=user_id)
    registry.mark_connected(connection.connection_id)
    try:
        await websocket.send_json({
            "type": protocol.CONNECTION_ESTABLISHED,
            "connection_id": connection.connection_id,
        })
        while True:
            try:
                data = await websocket.receive_text()
            except WebSocketDisconnect:
                break
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await websocket.send_json({"type": protocol.ERROR, "message": "Invalid JSON format"})
                continue
            if not await handle_client_message(websocket, connection.connection_id, message, registry):
                break
    except WebSocketDisconnect:
        pass
    finally:
        await registry.disconnect(connection.connection_id)


async def handle_client_message(
    websocket: WebSocket,
    connection_id: str,
    message: Any,
    registry: ConnectionRegistry,
) -> bool:
    """
    Dispatch one client frame: join, leave, request-current-members, ping.
    Returns False once the socket has been closed and the receive loop must stop.
    """
    if not isinstance(message, dict):
        await _send_error(websocket, "Message must be a JSON object")
        return True

    message_type = message.get("type")

    if message_type == protocol.PING:
        await websocket.send_json({"type": protocol.PONG})
        return True

    if message_type not in (protocol.JOIN, protocol.LEAVE, protocol.REQUEST_CURRENT_MEMBERS):
        await _send_error(websocket, f"Unknown message type: {message_type}")
        return True

    try:
        partition = validate_partition_key(message.get("partition"))
    except InvalidPartitionKeyError as e:
        await _send_error(websocket, e.message)
        return True

    if message_type == protocol.JOIN:
        if not await registry.join(connection_id, partition):
            # Connection is no longer registered; the client must reconnect and join again.
            logger.warning(
                "join_rejected",
                extra={"connection_id": connection_id, "partition": partition},
            )
            await _send_error(websocket, "Connection is no longer registered; reconnect")
            await websocket.close(code=STALE_CONNECTION_CLOSE_CODE, reason="Stale connection")
            return False
        await websocket.send_json({"type": protocol.JOINED, "partition": partition})
    elif message_type == protocol.LEAVE:
        if not await registry.leave(connection_id, partition):
            await _send_error(websocket, f"Not joined to partition {partition}")
            return True
        await websocket.send_json({"type": protocol.LEFT, "partition": partition})
    else:
        if partition not in registry.partitions_of(connection_id):
            await _send_error(websocket, f"Not joined to partition {partition}")
            return True
        await websocket.send_json({
            "type": protocol.CURRENT_MEMBERS,
            "partition": partition,
            "members": registry.online_users(partition),
        })
    return True


async def _send_error(websocket: WebSocket, text: str) -> None:
    payload: Dict[str, Any] = {"type": protocol.ERROR, "message": text}
    await websocket.send_json(payload)

"""
Connection registry: who is connected and which partitions they joined.

Membership is in-memory and ephemeral. Partitions are created on first join
and dropped when the last member leaves. A reconnecting client gets a fresh
connection with no partitions and must join again.
"""

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Set

from auditcast.audit.audit_models import utc_now
from auditcast.realtime.protocol import PARTITION_CHANGED

logger = logging.getLogger(__name__)


class MessageSink(Protocol):
    """Anything that can push a text frame to one client (e.g. a WebSocket)."""

    async def send_text(self, data: str) -> None:
        ...


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass
class Connection:
    connection_id: str
    sink: MessageSink
    user_id: Optional[str] = None
    state: ConnectionState = ConnectionState.CONNECTING
    partitions: Set[str] = field(default_factory=set)
    connected_at: datetime = field(default_factory=utc_now)


class ConnectionRegistry:
    """
    Owns the partition membership table. Business code only reaches it
    through join, leave, emit and members_of.
    Mutations complete before the first await, so one event loop needs no locks.
    """

    def __init__(self) -> None:
        # connection_id -> Connection
        self._connections: Dict[str, Connection] = {}
        # partition -> set of connection_ids
        self._partitions: Dict[str, Set[str]] = {}

    def open(
        self,
        sink: MessageSink,
        user_id: Optional[str] = None,
        connection_id: Optional[str] = None,
    ) -> Connection:
        """Register a connection in CONNECTING state."""
        connection = Connection(
            connection_id=connection_id or f"conn_{uuid.uuid4().hex[:12]}",
            sink=sink,
            user_id=user_id,
        )
        self._connections[connection.connection_id] = connection
        return connection

    def mark_connected(self, connection_id: str) -> bool:
        connection = self._connections.get(connection_id)
        if connection is None:
            return False
        connection.state = ConnectionState.CONNECTED
        connection.partitions.clear()
        logger.info(
            "connection_established",
            extra={"connection_id": connection_id, "user_id": connection.user_id},
        )
        return True

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    async def join(self, connection_id: str, partition: str) -> bool:
        """Add the connection to partition. Only CONNECTED connections can join."""
        connection = self._connections.get(connection_id)
        if connection is None or connection.state != ConnectionState.CONNECTED:
            return False
        if partition in connection.partitions:
            return True
        connection.partitions.add(partition)
        self._partitions.setdefault(partition, set()).add(connection_id)
        logger.debug(
            "partition_joined",
            extra={"connection_id": connection_id, "partition": partition},
        )
        await self._signal_presence(partition)
        return True

    async def leave(self, connection_id: str, partition: str) -> bool:
        connection = self._connections.get(connection_id)
        if connection is None or partition not in connection.partitions:
            return False
        connection.partitions.discard(partition)
        remaining = self._drop_member(partition, connection_id)
        logger.debug(
            "partition_left",
            extra={"connection_id": connection_id, "partition": partition},
        )
        if remaining:
            await self._signal_presence(partition)
        return True

    async def disconnect(self, connection_id: str) -> None:
        """Remove the connection from every partition. Safe to call twice."""
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return
        connection.state = ConnectionState.DISCONNECTED
        left = list(connection.partitions)
        connection.partitions.clear()
        still_alive = [p for p in left if self._drop_member(p, connection_id)]
        logger.info(
            "connection_closed",
            extra={"connection_id": connection_id, "user_id": connection.user_id},
        )
        for partition in still_alive:
            await self._signal_presence(partition)

    async def emit(self, partition: str, event_type: str, payload: Any) -> int:
        """Send to every member of partition. Returns the number of deliveries."""
        members = self._partitions.get(partition)
        if not members:
            logger.debug(
                "emit_no_members",
                extra={"partition": partition, "event_type": event_type},
            )
            return 0

        # Encoded once, before any send; an unencodable payload raises here and no socket is dropped.
        text = json.dumps(
            {"type": event_type, "partition": partition, "data": payload},
            default=str,
        )
        targets = list(members)
        results = await asyncio.gather(*(self.send_to(cid, text) for cid in targets))

        failed = [cid for cid, sent in zip(targets, results) if not sent]
        for connection_id in failed:
            await self.disconnect(connection_id)
        return len(targets) - len(failed)

    async def send_to(self, connection_id: str, text: str) -> bool:
        """Push one encoded frame. False means the transport failed."""
        connection = self._connections.get(connection_id)
        if connection is None or connection.state != ConnectionState.CONNECTED:
            return False
        try:
            await connection.sink.send_text(text)
            return True
        except Exception as e:
            logger.warning(
                "send_failed",
                extra={"connection_id": connection_id, "error": str(e)},
            )
            return False

    def members_of(self, partition: str) -> List[str]:
        """Connection ids currently joined to partition."""
        return sorted(self._partitions.get(partition, ()))

    def online_users(self, partition: str) -> List[str]:
        """Distinct user ids in partition. Anonymous connections are not listed."""
        users = {
            self._connections[cid].user_id
            for cid in self._partitions.get(partition, ())
            if cid in self._connections and self._connections[cid].user_id
        }
        return sorted(users)

    def partitions_of(self, connection_id: str) -> Set[str]:
        connection = self._connections.get(connection_id)
        return set(connection.partitions) if connection else set()

    def stats(self) -> Dict[str, Any]:
        return {
            "total_connections": len(self._connections),
            "total_partitions": len(self._partitions),
            "members_per_partition": {
                partition: len(members) for partition, members in self._partitions.items()
            },
        }

    def _drop_member(self, partition: str, connection_id: str) -> bool:
        """Remove membership; tear the partition down when empty. True if members remain."""
        members = self._partitions.get(partition)
        if members is None:
            return False
        members.discard(connection_id)
        if not members:
            del self._partitions[partition]
            return False
        return True

    async def _signal_presence(self, partition: str) -> None:
        # Clients answer with request-current-members; the list itself is pulled.
        await self.emit(partition, PARTITION_CHANGED, {})


# Process-wide instance used by the API layer
_registry: Optional[ConnectionRegistry] = None


def get_registry() -> ConnectionRegistry:
    """Return singleton connection registry."""
    global _registry
    if _registry is None:
        _registry = ConnectionRegistry()
    return _registry

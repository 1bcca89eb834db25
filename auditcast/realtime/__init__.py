"""Realtime layer: connection registry, partition membership, change fan-out."""

from auditcast.realtime.broadcaster import ChangeBroadcaster, ConnectionLayer
from auditcast.realtime.registry import (
    Connection,
    ConnectionRegistry,
    ConnectionState,
    MessageSink,
    get_registry,
)

__all__ = [
    "ChangeBroadcaster",
    "Connection",
    "ConnectionLayer",
    "ConnectionRegistry",
    "ConnectionState",
    "MessageSink",
    "get_registry",
]

"""Change fan-out to live connections. At-most-once, no acknowledgements."""

import logging
from typing import Any, Optional, Protocol

from auditcast.audit.audit_models import ChangeEvent, Outcome
from auditcast.audit.exceptions import BroadcastError
from auditcast.realtime.protocol import DATA_CHANGED


class ConnectionLayer(Protocol):
    """Partition-addressed emitter: the local registry or a cross-process relay."""

    async def emit(self, partition: str, event_type: str, payload: Any) -> int:
        ...


class ChangeBroadcaster:
    """Publishes data-changed to every connection joined to a partition."""

    def __init__(
        self,
        connection_layer: Optional[ConnectionLayer],
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._connection_layer = connection_layer
        self._logger = logger or logging.getLogger(__name__)

    async def broadcast(self, partition_key: str, event: ChangeEvent) -> Outcome:
        if self._connection_layer is None:
            self._logger.debug(
                "change_broadcast_skipped",
                extra={"partition": partition_key, "reason": "no connection layer"},
            )
            return Outcome(skipped=True)

        try:
            delivered = await self._connection_layer.emit(
                partition_key, DATA_CHANGED, event.to_payload()
            )
        except Exception as e:
            self._logger.error(
                "change_broadcast_failed",
                extra={
                    "partition": partition_key,
                    "entity_type": event.entity_type,
                    "actor_id": event.actor_id,
                    "error": str(e),
                },
            )
            return Outcome(error=BroadcastError(f"Broadcast failed: {e}"))

        self._logger.info(
            "change_broadcast",
            extra={
                "partition": partition_key,
                "entity_type": event.entity_type,
                "actor_id": event.actor_id,
                "delivered": delivered,
            },
        )
        return Outcome(delivered=delivered or 0)

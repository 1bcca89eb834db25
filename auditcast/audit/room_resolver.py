"""Actor → tenant partition resolution with an availability-first fallback chain."""

import logging
from typing import Any, Optional

from auditcast.audit.exceptions import TenantLookupError
from auditcast.audit.query_executor import QueryExecutor

DEFAULT_ANONYMOUS_ACTOR = "EXTERNAL_CLIENT"
DEFAULT_GLOBAL_PARTITION = "global"

TENANT_LOOKUP_SQL = "SELECT family_id FROM users WHERE id = :user_id"


def coerce_partition_key(value: Any, global_partition: str = DEFAULT_GLOBAL_PARTITION) -> str:
    """Trimmed string form of value; global_partition when that is empty."""
    text = "" if value is None else str(value).strip()
    return text or global_partition


def partition_for(
    actor_id: Optional[str],
    resolved: Optional[str],
    global_partition: str = DEFAULT_GLOBAL_PARTITION,
) -> str:
    """Non-empty partition for persistence: resolved tenant, else the actor itself."""
    return coerce_partition_key(resolved or actor_id, global_partition)


class RoomResolver:
    """
    Maps an acting principal to the partition used for audit and broadcast.

    Chain: explicit override → anonymous sentinel (None) → tenant lookup →
    actor id → global. Lookup problems are logged and never raised.
    """

    def __init__(
        self,
        executor: Optional[QueryExecutor],
        logger: Optional[logging.Logger] = None,
        anonymous_actor_id: str = DEFAULT_ANONYMOUS_ACTOR,
        global_partition: str = DEFAULT_GLOBAL_PARTITION,
    ) -> None:
        self._executor = executor
        self._logger = logger or logging.getLogger(__name__)
        self._anonymous_actor_id = anonymous_actor_id
        self._global_partition = global_partition

    @property
    def global_partition(self) -> str:
        return self._global_partition

    def is_anonymous(self, actor_id: Optional[str]) -> bool:
        return actor_id == self._anonymous_actor_id

    async def resolve(
        self,
        actor_id: Optional[str],
        partition_override: Optional[str] = None,
    ) -> Optional[str]:
        """Return the partition key for actor_id, or None for anonymous actors without override."""
        if partition_override is not None and str(partition_override).strip():
            return coerce_partition_key(partition_override, self._global_partition)

        if self.is_anonymous(actor_id):
            return None

        tenant_id: Optional[str] = None
        if actor_id and self._executor is not None:
            try:
                tenant_id = await self._lookup_tenant(actor_id)
            except TenantLookupError as e:
                self._logger.warning(
                    "tenant_lookup_failed",
                    extra={"actor_id": actor_id, "error": e.message},
                )
            else:
                if not tenant_id:
                    self._logger.warning(
                        "tenant_lookup_fallback",
                        extra={"actor_id": actor_id, "reason": "tenant not found"},
                    )

        return coerce_partition_key(tenant_id or actor_id, self._global_partition)

    async def _lookup_tenant(self, actor_id: str) -> Optional[str]:
        """Query the tenant of actor_id. Raises TenantLookupError when the backend fails."""
        try:
            rows = await self._executor.query(TENANT_LOOKUP_SQL, {"user_id": actor_id})
        except Exception as e:
            raise TenantLookupError(f"Tenant lookup failed for {actor_id}: {e}") from e
        if not rows:
            return None
        value = rows[0].get("family_id")
        if value is None:
            return None
        return str(value).strip() or None

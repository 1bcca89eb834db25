"""Read side of the audit trail: newest-first records of the caller's partition."""

import logging
from typing import List, Optional

from auditcast.application.exceptions import AuditTrailUnavailableError
from auditcast.audit.audit_models import StoredAuditRecord
from auditcast.audit.audit_repository import AuditRepository
from auditcast.audit.room_resolver import RoomResolver, partition_for
from auditcast.domain.exceptions import InvalidActorError


class AuditTrailService:
    """Lists audit records scoped to the partition the actor resolves to."""

    def __init__(
        self,
        resolver: RoomResolver,
        repository: AuditRepository,
        max_limit: int,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._resolver = resolver
        self._repository = repository
        self._max_limit = max_limit
        self._logger = logger or logging.getLogger(__name__)

    async def list_for_actor(
        self, actor_id: str, limit: Optional[int] = None
    ) -> tuple[str, List[StoredAuditRecord]]:
        """Return (partition_key, records). Anonymous actors have no trail to read."""
        if not actor_id or not actor_id.strip() or self._resolver.is_anonymous(actor_id):
            raise InvalidActorError("An identified actor is required to read the audit trail")

        resolved = await self._resolver.resolve(actor_id)
        partition_key = partition_for(actor_id, resolved, self._resolver.global_partition)
        effective_limit = min(limit or self._max_limit, self._max_limit)

        try:
            records = await self._repository.list_for_partition(partition_key, effective_limit)
        except Exception as e:
            self._logger.error(
                "audit_trail_read_failed",
                extra={"partition": partition_key, "error": str(e)},
            )
            raise AuditTrailUnavailableError(f"Audit trail unavailable: {e}") from e
        return partition_key, records

"""Best-effort audit persistence. Failures are logged and returned, never raised."""

import logging
from typing import Any, Optional

from auditcast.audit.audit_models import AuditRecord, Outcome, utc_now
from auditcast.audit.audit_repository import AuditRepository
from auditcast.audit.exceptions import AuditPersistenceError


def build_record(
    *,
    actor_id: str,
    action: str,
    entity_type: str,
    entity_id: Any,
    partition_key: str,
    details: Optional[str] = None,
    previous_state: Optional[Any] = None,
    changes: Optional[Any] = None,
) -> AuditRecord:
    """Create the immutable record. Timestamp is UTC, taken now."""
    return AuditRecord(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else "",
        partition_key=partition_key,
        timestamp=utc_now(),
        details=details,
        previous_state=previous_state,
        changes=changes,
    )


class AuditRecorder:
    """
    Appends audit records via repository.
    Audit durability and live notification are independent: a failed insert
    is reported in the Outcome and the caller carries on.
    """

    def __init__(
        self,
        repository: Optional[AuditRepository],
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._repository = repository
        self._logger = logger or logging.getLogger(__name__)

    async def record(self, record: AuditRecord) -> Outcome:
        if self._repository is None:
            self._logger.debug(
                "audit_persist_skipped",
                extra={"partition": record.partition_key, "reason": "no repository"},
            )
            return Outcome(skipped=True)
        try:
            await self._repository.save(record)
        except Exception as e:
            error = AuditPersistenceError(f"Audit insert failed: {e}")
            self._logger.error(
                "audit_persist_failed",
                extra={
                    "partition": record.partition_key,
                    "actor_id": record.actor_id,
                    "entity_type": record.entity_type,
                    "entity_id": record.entity_id,
                    "error": str(e),
                },
            )
            return Outcome(error=error)
        self._logger.info(
            "audit_persisted",
            extra={
                "partition": record.partition_key,
                "actor_id": record.actor_id,
                "action": record.action,
                "entity_type": record.entity_type,
                "entity_id": record.entity_id,
            },
        )
        return Outcome()

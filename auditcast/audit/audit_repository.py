"""Audit repository protocol. Audit layer depends on this; infrastructure implements it."""

from typing import List, Protocol

from auditcast.audit.audit_models import AuditRecord, StoredAuditRecord


class AuditRepository(Protocol):
    """Protocol for persisting immutable audit records."""

    async def save(self, record: AuditRecord) -> None:
        """Append an immutable audit record. Must not allow mutation."""
        ...

    async def list_for_partition(
        self, partition_key: str, limit: int
    ) -> List[StoredAuditRecord]:
        """Newest-first records of one partition."""
        ...

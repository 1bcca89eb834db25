"""Audit trail: records, partition resolution, best-effort persistence. No FastAPI."""

from auditcast.audit.audit_models import (
    AuditRecord,
    ChangeEvent,
    Outcome,
    StoredAuditRecord,
)
from auditcast.audit.audit_recorder import AuditRecorder, build_record
from auditcast.audit.exceptions import (
    AuditPersistenceError,
    BroadcastError,
    ChangeFeedError,
    TenantLookupError,
)
from auditcast.audit.room_resolver import RoomResolver, coerce_partition_key, partition_for

__all__ = [
    "AuditPersistenceError",
    "AuditRecord",
    "AuditRecorder",
    "BroadcastError",
    "ChangeEvent",
    "ChangeFeedError",
    "Outcome",
    "RoomResolver",
    "StoredAuditRecord",
    "TenantLookupError",
    "build_record",
    "coerce_partition_key",
    "partition_for",
]

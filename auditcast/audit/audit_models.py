"""Immutable audit record and change event models. Domain-level immutability."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class AuditRecord:
    """
    Immutable audit record: who, what, when (UTC), before/after, partition.
    partition_key is never empty.
    """

    actor_id: str
    action: str
    entity_type: str
    entity_id: str
    partition_key: str
    timestamp: datetime
    details: Optional[str] = None
    previous_state: Optional[Any] = None
    changes: Optional[Any] = None

    def __post_init__(self) -> None:
        if not self.partition_key or not self.partition_key.strip():
            raise ValueError("AuditRecord.partition_key must not be empty")

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation for JSON logging."""
        return {
            "actor_id": self.actor_id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "details": self.details,
            "previous_state": self.previous_state,
            "changes": self.changes,
            "partition_key": self.partition_key,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_change_event(self) -> "ChangeEvent":
        """Broadcast view of this record; drops details and previous_state."""
        return ChangeEvent(
            action=self.action,
            entity_type=self.entity_type,
            entity_id=self.entity_id,
            actor_id=self.actor_id,
            timestamp=self.timestamp,
            changes=self.changes,
        )


@dataclass(frozen=True)
class ChangeEvent:
    """Minimal live-update payload. A hint to refetch, never the state itself."""

    action: str
    entity_type: str
    entity_id: str
    actor_id: str
    timestamp: datetime
    changes: Optional[Any] = None

    def to_payload(self) -> Dict[str, Any]:
        """Wire payload (camelCase keys, ISO-8601 timestamp)."""
        return {
            "action": self.action,
            "entityType": self.entity_type,
            "entityId": self.entity_id,
            "actorId": self.actor_id,
            "timestamp": self.timestamp.isoformat(),
            "changes": self.changes,
        }


@dataclass(frozen=True)
class StoredAuditRecord:
    """Audit row as read back from storage. user_name is None for unknown or external actors."""

    id: int
    record: AuditRecord
    user_name: Optional[str] = None


@dataclass(frozen=True)
class Outcome:
    """Result of a best-effort side effect. error is set when it failed."""

    error: Optional[Exception] = None
    delivered: int = 0
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)

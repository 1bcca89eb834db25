"""SQL audit repository. Append-only inserts into audit_logs through a QueryExecutor."""

import json
from datetime import datetime, timezone
from typing import Any, List

from auditcast.audit.audit_models import AuditRecord, StoredAuditRecord
from auditcast.audit.query_executor import QueryExecutor

INSERT_AUDIT_SQL = (
    "INSERT INTO audit_logs "
    "(actor_id, action, entity_type, entity_id, details, previous_state, changes, partition_key, timestamp) "
    "VALUES (:actor_id, :action, :entity_type, :entity_id, :details, "
    "CAST(:previous_state AS JSONB), CAST(:changes AS JSONB), :partition_key, :timestamp)"
)

LIST_AUDIT_SQL = (
    "SELECT a.id, a.actor_id, u.name AS user_name, a.action, a.entity_type, a.entity_id, "
    "a.details, a.previous_state, a.changes, a.partition_key, a.timestamp "
    "FROM audit_logs a LEFT JOIN users u ON u.id = a.actor_id "
    "WHERE a.partition_key = :partition_key ORDER BY a.timestamp DESC, a.id DESC LIMIT :limit"
)


def _to_json(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, default=str)


def _from_json(value: Any) -> Any:
    # asyncpg hands JSONB back as text unless a codec is registered
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return value


class SqlAuditRepository:
    """Persists audit records to PostgreSQL. Implements AuditRepository protocol."""

    def __init__(self, executor: QueryExecutor) -> None:
        self._executor = executor

    async def save(self, record: AuditRecord) -> None:
        """Append one row. No update-in-place, no locking."""
        await self._executor.query(
            INSERT_AUDIT_SQL,
            {
                "actor_id": record.actor_id,
                "action": record.action,
                "entity_type": record.entity_type,
                "entity_id": record.entity_id,
                "details": record.details,
                "previous_state": _to_json(record.previous_state),
                "changes": _to_json(record.changes),
                "partition_key": record.partition_key,
                "timestamp": record.timestamp,
            },
        )

    async def list_for_partition(self, partition_key: str, limit: int) -> List[StoredAuditRecord]:
        """Return newest-first records of partition_key, at most limit, with the actor's display name."""
        rows = await self._executor.query(
            LIST_AUDIT_SQL, {"partition_key": partition_key, "limit": limit}
        )
        stored: List[StoredAuditRecord] = []
        for row in rows:
            timestamp = row["timestamp"]
            if isinstance(timestamp, str):
                timestamp = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
            if timestamp.tzinfo is None:
                timestamp = timestamp.replace(tzinfo=timezone.utc)
            stored.append(
                StoredAuditRecord(
                    id=row["id"],
                    user_name=row.get("user_name"),
                    record=AuditRecord(
                        actor_id=row["actor_id"],
                        action=row["action"],
                        entity_type=row["entity_type"],
                        entity_id=row["entity_id"] or "",
                        partition_key=row["partition_key"],
                        timestamp=timestamp,
                        details=row.get("details"),
                        previous_state=_from_json(row.get("previous_state")),
                        changes=_from_json(row.get("changes")),
                    ),
                )
            )
        return stored

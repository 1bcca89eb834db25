"""Pydantic schemas for the change feed API. Strict validation, no DB or infrastructure."""

import json
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from auditcast.audit.audit_models import StoredAuditRecord


def _ensure_json_serializable(v: Any) -> Any:
    if v is None:
        return v
    try:
        json.dumps(v)
    except (TypeError, ValueError) as e:
        raise ValueError("value must be JSON-serializable") from e
    return v


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class ChangeCreateRequest(BaseModel):
    """A state change already committed by the caller, reported for audit and fan-out."""

    action: str = Field(..., min_length=1, max_length=64, description="Verb tag, e.g. UPDATE")
    entity_type: str = Field(..., min_length=1, max_length=64, description="Resource kind, e.g. order")
    entity_id: str = Field(..., min_length=1, description="Identifier of the affected resource")
    details: Optional[str] = None
    previous_state: Optional[Any] = Field(None, description="JSON-serializable snapshot before the change")
    changes: Optional[Any] = Field(None, description="JSON-serializable diff")
    partition_override: Optional[str] = Field(None, description="Explicit tenant partition")

    @field_validator("previous_state", "changes")
    @classmethod
    def must_be_json_serializable(cls, v: Any) -> Any:
        return _ensure_json_serializable(v)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class ChangeAcceptedResponse(BaseModel):
    status: str = "accepted"
    correlation_id: str


class AuditLogResponse(BaseModel):
    """One audit row as returned to dashboard clients."""

    id: int
    actor_id: Optional[str]
    user_name: Optional[str] = None
    action: str
    entity_type: str
    entity_id: str
    details: Optional[str] = None
    previous_state: Optional[Any] = None
    changes: Optional[Any] = None
    partition_key: str
    timestamp: datetime

    @classmethod
    def from_stored(cls, stored: StoredAuditRecord) -> "AuditLogResponse":
        record = stored.record
        return cls(
            id=stored.id,
            actor_id=record.actor_id,
            user_name=stored.user_name,
            action=record.action,
            entity_type=record.entity_type,
            entity_id=record.entity_id,
            details=record.details,
            previous_state=record.previous_state,
            changes=record.changes,
            partition_key=record.partition_key,
            timestamp=record.timestamp,
        )


class AuditLogListResponse(BaseModel):
    partition_key: str
    items: List[AuditLogResponse]

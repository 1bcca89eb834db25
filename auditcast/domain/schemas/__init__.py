"""Pydantic schemas for API request/response."""

from auditcast.domain.schemas.change import (
    AuditLogListResponse,
    AuditLogResponse,
    ChangeAcceptedResponse,
    ChangeCreateRequest,
)

__all__ = [
    "AuditLogListResponse",
    "AuditLogResponse",
    "ChangeAcceptedResponse",
    "ChangeCreateRequest",
]

"""Domain layer: API schemas, validators, exceptions. Pure business logic only."""

from auditcast.domain.exceptions import (
    DomainError,
    DomainValidationError,
    InvalidActorError,
    InvalidPartitionKeyError,
)
from auditcast.domain.schemas import (
    AuditLogListResponse,
    AuditLogResponse,
    ChangeAcceptedResponse,
    ChangeCreateRequest,
)
from auditcast.domain.validators import (
    validate_change_create_request,
    validate_partition_key,
)

__all__ = [
    "AuditLogListResponse",
    "AuditLogResponse",
    "ChangeAcceptedResponse",
    "ChangeCreateRequest",
    "DomainError",
    "DomainValidationError",
    "InvalidActorError",
    "InvalidPartitionKeyError",
    "validate_change_create_request",
    "validate_partition_key",
]

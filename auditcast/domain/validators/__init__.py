"""Domain validators. Pure functions, no infrastructure."""

from auditcast.domain.validators.change_validator import (
    PARTITION_KEY_MAX_LENGTH,
    validate_change_create_request,
    validate_partition_key,
)

__all__ = [
    "PARTITION_KEY_MAX_LENGTH",
    "validate_change_create_request",
    "validate_partition_key",
]

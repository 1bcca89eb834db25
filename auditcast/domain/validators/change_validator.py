"""Validators for change feed inputs. Pure functions, no infrastructure or DB access."""

from typing import Optional

from auditcast.domain.exceptions import (
    DomainValidationError,
    InvalidPartitionKeyError,
)
from auditcast.domain.schemas.change import ChangeCreateRequest

PARTITION_KEY_MAX_LENGTH = 128


def validate_partition_key(partition: Optional[str]) -> str:
    """Return the trimmed key. Raises InvalidPartitionKeyError if empty or too long."""
    key = partition.strip() if isinstance(partition, str) else ""
    if not key:
        raise InvalidPartitionKeyError("partition must not be empty")
    if len(key) > PARTITION_KEY_MAX_LENGTH:
        raise InvalidPartitionKeyError(
            f"partition must be at most {PARTITION_KEY_MAX_LENGTH} characters"
        )
    return key


def validate_change_create_request(request: ChangeCreateRequest) -> None:
    """
    Validate a reported change: non-blank tags, sane override.
    Raises domain exceptions on violation.
    """
    if not request.action.strip():
        raise DomainValidationError("action must not be blank")
    if not request.entity_type.strip():
        raise DomainValidationError("entity_type must not be blank")
    if request.partition_override is not None and request.partition_override.strip():
        validate_partition_key(request.partition_override)

"""Domain-specific exceptions. Pure domain layer — no infrastructure."""


class DomainError(Exception):
    """Base for all domain-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DomainValidationError(DomainError):
    """Raised when domain validation rules are violated."""


class InvalidActorError(DomainError):
    """Raised when the acting principal is missing or empty."""


class InvalidPartitionKeyError(DomainValidationError):
    """Raised when a partition key is empty or too long."""

"""Change-feed exceptions. Typed, no HTTP. Never propagated to business callers."""


class ChangeFeedError(Exception):
    """Base for all audit and broadcast side-channel errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class TenantLookupError(ChangeFeedError):
    """Raised when the actor's tenant cannot be looked up. Recovered by actor-id fallback."""


class AuditPersistenceError(ChangeFeedError):
    """Raised when the audit row insert fails. Logged, never retried."""


class BroadcastError(ChangeFeedError):
    """Raised when emitting to the connection layer fails. Logged, never retried."""

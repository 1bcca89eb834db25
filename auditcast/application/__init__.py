# Application layer: services that orchestrate the audit and realtime layers.

from auditcast.application.audit_trail_service import AuditTrailService
from auditcast.application.change_service import (
    ChangeFeedService,
    ChangeResult,
    build_change_feed_service,
    fire_and_forget,
    record_and_broadcast,
)
from auditcast.application.exceptions import ApplicationError, AuditTrailUnavailableError

__all__ = [
    "ApplicationError",
    "AuditTrailService",
    "AuditTrailUnavailableError",
    "ChangeFeedService",
    "ChangeResult",
    "build_change_feed_service",
    "fire_and_forget",
    "record_and_broadcast",
]

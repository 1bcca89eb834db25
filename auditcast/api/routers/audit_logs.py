"""Audit log API router: GET /audit-logs (newest first, scoped to the caller's partition)."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from auditcast.api.dependencies import get_actor_id, get_audit_trail_service
from auditcast.application.audit_trail_service import AuditTrailService
from auditcast.domain.schemas.change import AuditLogListResponse, AuditLogResponse

router = APIRouter()


@router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
    actor_id: Annotated[str, Depends(get_actor_id)],
    service: Annotated[AuditTrailService, Depends(get_audit_trail_service)],
    limit: Annotated[Optional[int], Query(ge=1)] = None,
):
    partition_key, records = await service.list_for_actor(actor_id, limit)
    return AuditLogListResponse(
        partition_key=partition_key,
        items=[AuditLogResponse.from_stored(r) for r in records],
    )

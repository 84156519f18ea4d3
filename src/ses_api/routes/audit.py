"""Audit routes for querying the environment audit trail."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ses_api.models.audit import AuditLogListResponse
from ses_api.models.common import AuditAction
from ses_api.services.audit import AuditService, get_audit_service

AuditServiceDep = Annotated[AuditService, Depends(get_audit_service)]

router = APIRouter(prefix="/api/v1/audit", tags=["audit"])


@router.get("", response_model=AuditLogListResponse)
async def get_audit_logs(
    audit_service: AuditServiceDep,
    environment_id: str | None = Query(None, description="Filter by environment ID"),
    action: AuditAction | None = Query(None, description="Filter by action type"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum entries to return"),
) -> AuditLogListResponse:
    """Query audit log entries, newest first.

    Entries of deleted environments remain queryable by their ID.
    """
    entries = audit_service.get_audit_logs(
        environment_id=environment_id,
        action=action,
        limit=limit,
    )
    return AuditLogListResponse(entries=entries, total=len(entries))

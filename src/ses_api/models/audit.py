"""State transition and audit log models for environment history."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from ses_api.models.common import AuditAction, EnvironmentStatus
from ses_api.models.environment import generate_uuid


class StateTransition(BaseModel):
    """One status change of one environment.

    Transitions are append-only and outlive the environment they describe,
    so the ordered log stays queryable after deletion.

    Attributes:
        id: Unique identifier for this transition
        environment_id: Environment the transition belongs to
        from_state: Status before the change
        to_state: Status after the change
        reason: Free-text reason
        metadata: Structured context such as stage name and progress
        created_at: When the transition was recorded
    """

    id: str = Field(default_factory=generate_uuid)
    environment_id: str
    from_state: EnvironmentStatus
    to_state: EnvironmentStatus
    reason: str = ""
    metadata: dict[str, Any] | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class AuditLog(BaseModel):
    """An audited action on an environment.

    Covers actions beyond status changes (creation, uploads, failures).
    ``user_id`` is the system sentinel for background-initiated actions.
    """

    id: str = Field(default_factory=generate_uuid)
    environment_id: str
    action: AuditAction
    user_id: str
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class AuditLogListResponse(BaseModel):
    """Response for listing audit log entries."""

    entries: list[AuditLog]
    total: int

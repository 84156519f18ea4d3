"""Audit service for environment state transitions and audit log entries."""

import logging
from typing import Any

from ses_api.core.config import Settings, get_settings
from ses_api.core.store import JsonStore, RecordStore
from ses_api.models.audit import AuditLog, StateTransition
from ses_api.models.common import AuditAction, EnvironmentStatus

logger = logging.getLogger(__name__)


class AuditService:
    """Service for the append-only environment history.

    Records two independent trails: state transitions (one per status change,
    in commit order) and audit log entries (creation, updates, uploads,
    failures). Neither trail is removed when its environment is deleted.

    Example:
        ```python
        service = get_audit_service()

        service.record_transition(
            environment_id="env-123",
            from_state=EnvironmentStatus.PENDING,
            to_state=EnvironmentStatus.PROVISIONING,
            reason="Provisioning initiated",
        )
        service.record_action("env-123", AuditAction.CREATED, user_id="alice")

        history = service.get_history("env-123")
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transition_store: RecordStore[StateTransition] | None = None,
        audit_store: RecordStore[AuditLog] | None = None,
    ) -> None:
        """Initialize the AuditService.

        Args:
            settings: Application settings (uses default if not provided)
            transition_store: Optional store for transitions (JSON file by default)
            audit_store: Optional store for audit entries (JSON file by default)
        """
        self.settings = settings or get_settings()
        self._transition_store = transition_store
        self._audit_store = audit_store

    # -------------------------------------------------------------------------
    # Store Properties (lazy initialization)
    # -------------------------------------------------------------------------

    @property
    def transition_store(self) -> RecordStore[StateTransition]:
        """Get the transition store, initializing if needed."""
        if self._transition_store is None:
            file_path = self.settings.data_dir / "metadata" / "state_transitions.json"
            self._transition_store = JsonStore[StateTransition](
                file_path=file_path,
                collection_key="transitions",
                model_class=StateTransition,
            )
        return self._transition_store

    @property
    def audit_store(self) -> RecordStore[AuditLog]:
        """Get the audit log store, initializing if needed."""
        if self._audit_store is None:
            file_path = self.settings.data_dir / "metadata" / "audit_logs.json"
            self._audit_store = JsonStore[AuditLog](
                file_path=file_path,
                collection_key="audit_logs",
                model_class=AuditLog,
            )
        return self._audit_store

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def record_transition(
        self,
        environment_id: str,
        from_state: EnvironmentStatus,
        to_state: EnvironmentStatus,
        reason: str,
        metadata: dict[str, Any] | None = None,
    ) -> StateTransition:
        """Append a state transition for an environment."""
        transition = StateTransition(
            environment_id=environment_id,
            from_state=from_state,
            to_state=to_state,
            reason=reason,
            metadata=metadata,
        )
        created = self.transition_store.create(transition)
        logger.debug(
            f"Environment {environment_id}: {from_state.value} -> {to_state.value} ({reason})"
        )
        return created

    def record_action(
        self,
        environment_id: str,
        action: AuditAction,
        user_id: str,
        details: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Append an audit log entry for an environment."""
        entry = AuditLog(
            environment_id=environment_id,
            action=action,
            user_id=user_id,
            details=details or {},
        )
        created = self.audit_store.create(entry)
        logger.debug(f"Recorded audit entry: {action.value} on {environment_id} by {user_id}")
        return created

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_history(self, environment_id: str) -> list[StateTransition]:
        """Transitions for an environment in commit order.

        The store keeps append order, so no timestamp sort is applied.
        """
        return self.transition_store.find(lambda t: t.environment_id == environment_id)

    def get_audit_logs(
        self,
        environment_id: str | None = None,
        action: AuditAction | None = None,
        limit: int = 100,
    ) -> list[AuditLog]:
        """Audit entries, newest first.

        Args:
            environment_id: Filter by environment
            action: Filter by action type
            limit: Maximum number of entries to return

        Returns:
            Matching audit log entries
        """
        entries = self.audit_store.list_all()

        if environment_id:
            entries = [e for e in entries if e.environment_id == environment_id]

        if action:
            entries = [e for e in entries if e.action == action]

        entries.reverse()
        entries.sort(key=lambda e: e.created_at, reverse=True)
        return entries[:limit]


# Global service instance
_audit_service: AuditService | None = None


def get_audit_service() -> AuditService:
    """Get the global AuditService instance."""
    global _audit_service
    if _audit_service is None:
        _audit_service = AuditService()
    return _audit_service


def reset_audit_service() -> None:
    """Reset the global AuditService instance (for testing)."""
    global _audit_service
    _audit_service = None

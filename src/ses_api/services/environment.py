"""EnvironmentService for environment records, status changes and history."""

import logging
import random
from typing import Any

from ses_api.core.config import Settings, get_settings
from ses_api.core.store import ConditionFailedError, JsonStore, RecordStore
from ses_api.models.audit import StateTransition
from ses_api.models.common import AuditAction, EnvironmentStatus
from ses_api.models.environment import (
    ArtifactUpload,
    Environment,
    EnvironmentLogEntry,
    EnvironmentMetrics,
    EnvironmentSpec,
    EnvironmentStatusSummary,
    EnvironmentUpdate,
    ValidationResult,
)
from ses_api.services.audit import AuditService, get_audit_service
from ses_api.services.cost import CostModel, get_cost_model
from ses_api.services.validator import SpecValidator, get_spec_validator

logger = logging.getLogger(__name__)


class EnvironmentNotFoundError(Exception):
    """Raised when an environment is not found."""

    pass


class InvalidStateTransitionError(Exception):
    """Raised when an operation is requested from a state that forbids it."""

    pass


class SpecValidationError(Exception):
    """Raised when an environment specification fails validation."""

    def __init__(self, result: ValidationResult) -> None:
        super().__init__("; ".join(result.errors) or "Invalid environment specification")
        self.result = result


# States from which (re-)provisioning may be requested
PROVISIONABLE_STATES: frozenset[EnvironmentStatus] = frozenset(
    {EnvironmentStatus.PENDING, EnvironmentStatus.STOPPED, EnvironmentStatus.ERROR}
)


class EnvironmentService:
    """Service for environment records and their audited status changes.

    Every status change goes through ``transition`` so that it is paired with
    exactly one StateTransition row. Provisioning workflows live in
    ProvisioningOrchestrator; this service only owns the records.

    Example:
        ```python
        service = get_environment_service()

        env = service.create_environment(spec)
        env = service.begin_provisioning(env.id)
        env = service.transition(env.id, EnvironmentStatus.RUNNING, "Provisioned")

        service.get_history(env.id)
        service.delete_environment(env.id)
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        environment_store: RecordStore[Environment] | None = None,
        upload_store: RecordStore[ArtifactUpload] | None = None,
        audit_service: AuditService | None = None,
        cost_model: CostModel | None = None,
        validator: SpecValidator | None = None,
    ) -> None:
        """Initialize the EnvironmentService.

        Args:
            settings: Application settings (uses default if not provided)
            environment_store: Optional environment store (JSON file by default)
            upload_store: Optional artifact upload store (JSON file by default)
            audit_service: Optional AuditService instance
            cost_model: Optional CostModel instance
            validator: Optional SpecValidator instance
        """
        self.settings = settings or get_settings()
        self._environment_store = environment_store
        self._upload_store = upload_store
        self._audit_service = audit_service
        self.cost_model = cost_model or get_cost_model()
        self.validator = validator or get_spec_validator()

    # -------------------------------------------------------------------------
    # Lazy dependencies
    # -------------------------------------------------------------------------

    @property
    def environment_store(self) -> RecordStore[Environment]:
        """Get the environment store, initializing if needed."""
        if self._environment_store is None:
            file_path = self.settings.data_dir / "metadata" / "environments.json"
            self._environment_store = JsonStore[Environment](
                file_path=file_path,
                collection_key="environments",
                model_class=Environment,
            )
        return self._environment_store

    @property
    def upload_store(self) -> RecordStore[ArtifactUpload]:
        """Get the upload store, initializing if needed."""
        if self._upload_store is None:
            file_path = self.settings.data_dir / "metadata" / "uploads.json"
            self._upload_store = JsonStore[ArtifactUpload](
                file_path=file_path,
                collection_key="uploads",
                model_class=ArtifactUpload,
            )
        return self._upload_store

    @property
    def audit_service(self) -> AuditService:
        """Get the audit service instance."""
        if self._audit_service is None:
            self._audit_service = get_audit_service()
        return self._audit_service

    # -------------------------------------------------------------------------
    # CRUD Operations
    # -------------------------------------------------------------------------

    def create_environment(self, spec: EnvironmentSpec) -> Environment:
        """Validate a specification and persist it as a PENDING environment.

        Args:
            spec: The environment specification

        Returns:
            The created Environment

        Raises:
            SpecValidationError: If the specification is invalid (nothing is written)
        """
        result = self.validator.validate(spec)
        if not result.valid:
            raise SpecValidationError(result)

        estimated_cost = self.cost_model.calculate(
            spec.compute, spec.storage, len(spec.capabilities)
        )
        env = Environment(
            **spec.model_dump(),
            status=EnvironmentStatus.PENDING,
            estimated_cost=estimated_cost,
        )
        created = self.environment_store.create(env)

        self.audit_service.record_action(
            created.id,
            AuditAction.CREATED,
            user_id=spec.owner,
            details={"message": "Environment created", "estimated_cost": estimated_cost},
        )
        logger.info(
            f"Created environment {created.id} ('{spec.name}') "
            f"with estimated cost {estimated_cost:.2f}/day"
        )
        return created

    def get_environment(self, env_id: str) -> Environment | None:
        """Get an environment by ID.

        Args:
            env_id: Environment's unique identifier

        Returns:
            Environment if found, None otherwise
        """
        return self.environment_store.get_by_id(env_id)

    def require_environment(self, env_id: str) -> Environment:
        """Get an environment by ID, raising if it does not exist."""
        env = self.environment_store.get_by_id(env_id)
        if env is None:
            raise EnvironmentNotFoundError(f"Environment not found: {env_id}")
        return env

    def list_environments(
        self,
        status: EnvironmentStatus | None = None,
        owner: str | None = None,
    ) -> list[Environment]:
        """List environments, newest first, with optional filtering.

        Args:
            status: Filter by status
            owner: Filter by owner

        Returns:
            List of matching environments
        """
        environments = self.environment_store.list_all()

        if status:
            environments = [e for e in environments if e.status == status]

        if owner:
            environments = [e for e in environments if e.owner == owner]

        environments.reverse()
        environments.sort(key=lambda e: e.created_at, reverse=True)
        return environments

    def update_environment(
        self, env_id: str, update: EnvironmentUpdate, user_id: str | None = None
    ) -> Environment:
        """Apply a partial update to an environment's descriptive fields.

        Args:
            env_id: Environment's unique identifier
            update: Fields to change; unset fields are left alone
            user_id: Acting user for the audit entry (defaults to the owner)

        Returns:
            The updated Environment

        Raises:
            EnvironmentNotFoundError: If environment doesn't exist
        """
        changes = update.changes()
        updated = self.environment_store.update_fields(env_id, changes)
        if updated is None:
            raise EnvironmentNotFoundError(f"Environment not found: {env_id}")

        if changes:
            self.audit_service.record_action(
                env_id,
                AuditAction.UPDATED,
                user_id=user_id or updated.owner,
                details={"fields": sorted(changes)},
            )
        return updated

    def update_fields(self, env_id: str, **fields: Any) -> Environment:
        """Write non-status fields (health, uptime, cost) without a transition.

        Raises:
            EnvironmentNotFoundError: If environment doesn't exist
        """
        updated = self.environment_store.update_fields(env_id, fields)
        if updated is None:
            raise EnvironmentNotFoundError(f"Environment not found: {env_id}")
        return updated

    def delete_environment(self, env_id: str) -> Environment:
        """Record the final transition and remove an environment.

        Transitions and audit entries are kept so the history stays
        queryable by the deleted ID.

        Args:
            env_id: Environment's unique identifier

        Returns:
            The environment as it was just before removal

        Raises:
            EnvironmentNotFoundError: If environment doesn't exist
        """
        env = self.require_environment(env_id)

        self.audit_service.record_transition(
            env_id,
            from_state=env.status,
            to_state=EnvironmentStatus.DELETED,
            reason="User requested deletion",
        )
        self.environment_store.delete(env_id)
        self.audit_service.record_action(
            env_id,
            AuditAction.DELETED,
            user_id=env.owner,
            details={"message": "Environment deleted", "last_status": env.status.value},
        )

        logger.info(f"Deleted environment {env_id}")
        return env

    # -------------------------------------------------------------------------
    # Status changes
    # -------------------------------------------------------------------------

    def transition(
        self,
        env_id: str,
        status: EnvironmentStatus,
        reason: str,
        metadata: dict[str, Any] | None = None,
        **fields: Any,
    ) -> Environment:
        """Overwrite an environment's status and append the matching transition.

        No source-state check is made; callers that need one use
        ``begin_provisioning``.

        Args:
            env_id: Environment's unique identifier
            status: New status
            reason: Free-text reason recorded with the transition
            metadata: Optional structured transition metadata
            **fields: Other environment fields to write in the same update

        Returns:
            Updated Environment

        Raises:
            EnvironmentNotFoundError: If environment doesn't exist
        """
        env = self.require_environment(env_id)
        previous = env.status

        updated = self.environment_store.update_fields(env_id, {**fields, "status": status})
        if updated is None:
            raise EnvironmentNotFoundError(f"Environment not found: {env_id}")

        self.audit_service.record_transition(
            env_id, from_state=previous, to_state=status, reason=reason, metadata=metadata
        )
        logger.info(f"Environment {env_id} transitioned {previous.value} -> {status.value}")
        return updated

    def begin_provisioning(self, env_id: str) -> Environment:
        """Move an environment to PROVISIONING if its state allows it.

        The state check and the write happen in one conditional store update,
        so of two concurrent requests for the same environment only one wins.

        Args:
            env_id: Environment's unique identifier

        Returns:
            Updated Environment in PROVISIONING status

        Raises:
            EnvironmentNotFoundError: If environment doesn't exist
            InvalidStateTransitionError: If not in PENDING, STOPPED or ERROR
        """
        observed: list[EnvironmentStatus] = []

        def can_provision(env: Environment) -> bool:
            observed.append(env.status)
            return env.status in PROVISIONABLE_STATES

        try:
            updated = self.environment_store.update_fields(
                env_id, {"status": EnvironmentStatus.PROVISIONING}, condition=can_provision
            )
        except ConditionFailedError as e:
            current = e.current.status  # type: ignore[attr-defined]
            raise InvalidStateTransitionError(
                f"Environment {env_id} cannot be provisioned in state {current.value}"
            ) from e

        if updated is None:
            raise EnvironmentNotFoundError(f"Environment not found: {env_id}")

        self.audit_service.record_transition(
            env_id,
            from_state=observed[-1],
            to_state=EnvironmentStatus.PROVISIONING,
            reason="Provisioning initiated",
        )
        logger.info(f"Environment {env_id} provisioning initiated from {observed[-1].value}")
        return updated

    # -------------------------------------------------------------------------
    # Views and artifacts
    # -------------------------------------------------------------------------

    def get_status(self, env_id: str) -> EnvironmentStatusSummary:
        """Compact status view of an environment.

        Raises:
            EnvironmentNotFoundError: If environment doesn't exist
        """
        env = self.require_environment(env_id)
        return EnvironmentStatusSummary(
            id=env.id,
            status=env.status,
            health=env.health,
            uptime=env.uptime,
            cost=env.actual_cost,
        )

    def get_history(self, env_id: str) -> list[StateTransition]:
        """Transitions of an environment, oldest first (also after deletion)."""
        return self.audit_service.get_history(env_id)

    def record_upload(
        self,
        env_id: str,
        filename: str,
        size: int,
        file_type: str = "",
        version: str = "",
    ) -> ArtifactUpload:
        """Record an artifact uploaded to an environment.

        Raises:
            EnvironmentNotFoundError: If environment doesn't exist
        """
        env = self.require_environment(env_id)
        upload = self.upload_store.create(
            ArtifactUpload(
                environment_id=env_id,
                filename=filename,
                file_type=file_type,
                version=version,
                size=size,
            )
        )
        self.audit_service.record_action(
            env_id,
            AuditAction.UPLOADED,
            user_id=env.owner,
            details={"filename": filename, "file_type": file_type, "version": version},
        )
        logger.info(f"Recorded upload {filename} ({size} bytes) for environment {env_id}")
        return upload

    def list_uploads(self, env_id: str) -> list[ArtifactUpload]:
        """Artifacts uploaded to an environment, oldest first.

        Raises:
            EnvironmentNotFoundError: If environment doesn't exist
        """
        self.require_environment(env_id)
        return self.upload_store.find(lambda u: u.environment_id == env_id)

    def get_metrics(self, env_id: str) -> EnvironmentMetrics:
        """Sample current resource usage of an environment.

        Usage is simulated and only reported while the environment is
        RUNNING; in any other state every figure is zero.

        Raises:
            EnvironmentNotFoundError: If environment doesn't exist
        """
        env = self.require_environment(env_id)
        if env.status != EnvironmentStatus.RUNNING:
            return EnvironmentMetrics(environment_id=env_id)

        return EnvironmentMetrics(
            environment_id=env_id,
            cpu_usage=random.uniform(0, 100),
            memory_usage=random.uniform(0, 100),
            disk_usage=random.uniform(0, 100),
            network_in=random.uniform(0, 1000),
            network_out=random.uniform(0, 1000),
        )

    def get_logs(self, env_id: str, limit: int = 100) -> list[EnvironmentLogEntry]:
        """Activity log of an environment, newest first.

        Built from the environment's state transitions. Transitions into
        ERROR are logged at ERROR level, everything else at INFO.

        Raises:
            EnvironmentNotFoundError: If environment doesn't exist
        """
        self.require_environment(env_id)
        entries = [
            EnvironmentLogEntry(
                timestamp=t.created_at,
                level="ERROR" if t.to_state == EnvironmentStatus.ERROR else "INFO",
                message=f"{t.from_state.value} -> {t.to_state.value}: {t.reason}",
            )
            for t in self.get_history(env_id)
        ]
        entries.reverse()
        return entries[:limit]


# Global service instance
_environment_service: EnvironmentService | None = None


def get_environment_service() -> EnvironmentService:
    """Get the global EnvironmentService instance."""
    global _environment_service
    if _environment_service is None:
        _environment_service = EnvironmentService()
    return _environment_service


def reset_environment_service() -> None:
    """Reset the global EnvironmentService instance (for testing)."""
    global _environment_service
    _environment_service = None

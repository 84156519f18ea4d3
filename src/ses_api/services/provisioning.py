"""ProvisioningOrchestrator for environment lifecycle workflows."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Callable, Coroutine
from typing import TYPE_CHECKING, Any

from ses_api.core.config import Settings, get_settings
from ses_api.core.telemetry import get_tracer
from ses_api.models.common import SYSTEM_USER, AuditAction, EnvironmentStatus
from ses_api.services.audit import AuditService, get_audit_service
from ses_api.services.environment import (
    EnvironmentNotFoundError,
    EnvironmentService,
    get_environment_service,
)
from ses_api.services.fleet_backend import (
    FleetBackend,
    FleetBackendError,
    default_fleet_backend_factory,
)

if TYPE_CHECKING:
    from ses_api.models.environment import Environment, EnvironmentSpec
    from ses_api.models.fleet import FleetConfig

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

SIMULATED_STAGES = ("validating", "allocating", "configuring", "starting")

FleetBackendFactory = Callable[[str], FleetBackend]


def format_uptime(elapsed_hours: float) -> str:
    """Render elapsed hours as "<d>d <h>h"."""
    days, hours = divmod(int(elapsed_hours), 24)
    return f"{days}d {hours}h"


class ProvisioningOrchestrator:
    """Runs provisioning workflows as supervised background tasks.

    Requests return as soon as the record and its transition are written;
    the workflow then advances the environment on the event loop. Every task
    is tracked per environment so it can be awaited or cancelled.

    Example:
        ```python
        orchestrator = get_provisioning_orchestrator()

        env = orchestrator.create_environment(spec)
        orchestrator.provision(env.id)

        await orchestrator.wait_for_workflows(env.id)
        await orchestrator.shutdown()
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        environment_service: EnvironmentService | None = None,
        audit_service: AuditService | None = None,
        fleet_backend_factory: FleetBackendFactory | None = None,
    ) -> None:
        """Initialize the ProvisioningOrchestrator.

        Args:
            settings: Application settings (uses default if not provided)
            environment_service: Optional EnvironmentService instance
            audit_service: Optional AuditService instance
            fleet_backend_factory: Builds a FleetBackend for a region
        """
        self.settings = settings or get_settings()
        self._environment_service = environment_service
        self._audit_service = audit_service
        self.fleet_backend_factory = fleet_backend_factory or default_fleet_backend_factory
        self._workflows: dict[str, set[asyncio.Task[None]]] = {}
        self._uptime_tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def environment_service(self) -> EnvironmentService:
        """Get the environment service instance."""
        if self._environment_service is None:
            self._environment_service = get_environment_service()
        return self._environment_service

    @property
    def audit_service(self) -> AuditService:
        """Get the audit service instance."""
        if self._audit_service is None:
            self._audit_service = get_audit_service()
        return self._audit_service

    # -------------------------------------------------------------------------
    # Lifecycle requests
    # -------------------------------------------------------------------------

    def create_environment(self, spec: EnvironmentSpec) -> Environment:
        """Create an environment and, if configured, start simulated provisioning."""
        env = self.environment_service.create_environment(spec)
        if self.settings.provision_on_create:
            self._spawn(env.id, self._run_simulated_workflow(env.id))
        return env

    def provision(self, env_id: str) -> Environment:
        """Request provisioning and launch the matching workflow.

        Raises:
            EnvironmentNotFoundError: If environment doesn't exist
            InvalidStateTransitionError: If the current state forbids provisioning
        """
        env = self.environment_service.begin_provisioning(env_id)
        self.audit_service.record_action(
            env_id,
            AuditAction.PROVISIONING_REQUESTED,
            user_id=env.owner,
            details={"delegated": env.uses_fleet_backend},
        )

        if env.uses_fleet_backend:
            self._spawn(env_id, self._run_delegated_workflow(env_id))
        else:
            self._spawn(env_id, self._run_simulated_workflow(env_id))
        return env

    def start(self, env_id: str) -> Environment:
        """Set an environment to RUNNING."""
        return self._set_status(env_id, EnvironmentStatus.RUNNING)

    def stop(self, env_id: str) -> Environment:
        """Set an environment to STOPPED."""
        return self._set_status(env_id, EnvironmentStatus.STOPPED)

    def _set_status(self, env_id: str, status: EnvironmentStatus) -> Environment:
        return self.environment_service.transition(
            env_id, status, f"Status changed to {status.value}"
        )

    def delete(self, env_id: str) -> Environment:
        """Delete an environment, tearing down fleet resources if it had any.

        Raises:
            EnvironmentNotFoundError: If environment doesn't exist
        """
        env = self.environment_service.delete_environment(env_id)

        uptime_task = self._uptime_tasks.pop(env_id, None)
        if uptime_task is not None:
            uptime_task.cancel()

        if env.uses_fleet_backend and env.fleet_config is not None:
            self._spawn(env_id, self._run_teardown(env_id, env.fleet_config))
        return env

    # -------------------------------------------------------------------------
    # Supervision
    # -------------------------------------------------------------------------

    def _spawn(self, env_id: str, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.create_task(coro, name=f"workflow-{env_id}")
        tasks = self._workflows.setdefault(env_id, set())
        tasks.add(task)

        def _done(t: asyncio.Task[None]) -> None:
            tasks.discard(t)
            if not tasks and self._workflows.get(env_id) is tasks:
                del self._workflows[env_id]
            self._log_failure(env_id, t)

        task.add_done_callback(_done)
        return task

    def _start_uptime(self, env_id: str) -> None:
        previous = self._uptime_tasks.pop(env_id, None)
        if previous is not None:
            previous.cancel()

        task = asyncio.create_task(self._accrue_uptime(env_id), name=f"uptime-{env_id}")
        self._uptime_tasks[env_id] = task

        def _done(t: asyncio.Task[None]) -> None:
            if self._uptime_tasks.get(env_id) is t:
                del self._uptime_tasks[env_id]
            self._log_failure(env_id, t)

        task.add_done_callback(_done)

    @staticmethod
    def _log_failure(env_id: str, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"Background task {task.get_name()} for {env_id} failed: {exc}",
                exc_info=exc,
            )

    async def wait_for_workflows(self, env_id: str | None = None) -> None:
        """Wait until provisioning and teardown tasks have finished.

        Uptime accrual tasks are open-ended and are not awaited.

        Args:
            env_id: Only wait for this environment's tasks
        """
        while True:
            if env_id is None:
                pending = [t for tasks in self._workflows.values() for t in tasks]
            else:
                pending = list(self._workflows.get(env_id, ()))
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def active_workflows(self) -> dict[str, int]:
        """Number of running workflow tasks per environment."""
        return {env_id: len(tasks) for env_id, tasks in self._workflows.items()}

    async def shutdown(self) -> None:
        """Cancel every background task and wait for them to exit."""
        tasks = [t for ts in self._workflows.values() for t in ts]
        tasks.extend(self._uptime_tasks.values())
        if not tasks:
            return

        logger.info(f"Cancelling {len(tasks)} background provisioning tasks")
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._workflows.clear()
        self._uptime_tasks.clear()

    # -------------------------------------------------------------------------
    # Workflows
    # -------------------------------------------------------------------------

    async def _run_simulated_workflow(self, env_id: str) -> None:
        """Step through the simulated stages and end in RUNNING."""
        with tracer.start_as_current_span("provisioning.simulated") as span:
            span.set_attribute("environment.id", env_id)

            for i, stage in enumerate(SIMULATED_STAGES):
                await asyncio.sleep(self.settings.provisioning_stage_interval_seconds)

                progress = int((i + 1) / len(SIMULATED_STAGES) * 100)
                status = (
                    EnvironmentStatus.RUNNING if progress == 100 else EnvironmentStatus.PROVISIONING
                )
                try:
                    self.environment_service.transition(
                        env_id,
                        status,
                        f"Stage: {stage} ({progress}%)",
                        metadata={"stage": stage, "progress": progress},
                        health=random.randint(90, 99),
                    )
                except EnvironmentNotFoundError:
                    logger.info(f"Environment {env_id} removed during provisioning; stopping")
                    return

            logger.info(f"Simulated provisioning of {env_id} complete")
        self._start_uptime(env_id)

    async def _run_delegated_workflow(self, env_id: str) -> None:
        """Provision the environment's fleet resources through the backend."""
        with tracer.start_as_current_span("provisioning.delegated") as span:
            span.set_attribute("environment.id", env_id)

            try:
                env = self.environment_service.transition(
                    env_id, EnvironmentStatus.PROVISIONING, "Validating FleetWise configuration"
                )
            except EnvironmentNotFoundError:
                logger.info(f"Environment {env_id} removed before delegation; stopping")
                return

            config = env.fleet_config
            if config is None:
                self._fail(env_id, "environment has no fleet configuration")
                return
            region = config.region or self.settings.fleet_default_region
            span.set_attribute("fleet.region", region)

            await asyncio.sleep(self.settings.fleet_validation_delay_seconds)

            try:
                backend = self.fleet_backend_factory(region)
                result = await asyncio.to_thread(backend.provision_environment, env_id, config)
            except FleetBackendError as e:
                logger.error(f"FleetWise provisioning failed for {env_id}: {e}")
                span.record_exception(e)
                self._fail(env_id, str(e))
                return
            except Exception as e:
                logger.error(
                    f"Unexpected error provisioning {env_id} through FleetWise: {e}",
                    exc_info=True,
                )
                span.record_exception(e)
                self._fail(env_id, str(e) or type(e).__name__)
                return

            try:
                self.environment_service.transition(
                    env_id,
                    EnvironmentStatus.RUNNING,
                    "AWS FleetWise environment provisioned successfully",
                    metadata=result.summary(),
                    health=random.randint(95, 99),
                )
            except EnvironmentNotFoundError:
                logger.info(f"Environment {env_id} removed during provisioning; stopping")
                return

            logger.info(f"FleetWise provisioning of {env_id} complete: {result.summary()}")
        self._start_uptime(env_id)

    def _fail(self, env_id: str, error: str) -> None:
        try:
            self.environment_service.transition(
                env_id,
                EnvironmentStatus.ERROR,
                f"FleetWise provisioning failed: {error}",
                metadata={"error": error},
                health=0,
            )
        except EnvironmentNotFoundError:
            logger.info(f"Environment {env_id} removed before failure could be recorded")
        self.audit_service.record_action(
            env_id,
            AuditAction.PROVISIONING_FAILED,
            user_id=SYSTEM_USER,
            details={"error": error},
        )

    async def _accrue_uptime(self, env_id: str) -> None:
        """Advance uptime and actual cost while the environment is RUNNING."""
        started = time.monotonic()
        while True:
            await asyncio.sleep(self.settings.uptime_tick_seconds)

            env = self.environment_service.get_environment(env_id)
            if env is None or env.status != EnvironmentStatus.RUNNING:
                return

            elapsed_hours = (time.monotonic() - started) / 3600
            try:
                self.environment_service.update_fields(
                    env_id,
                    uptime=format_uptime(elapsed_hours),
                    actual_cost=env.estimated_cost * elapsed_hours / 24,
                )
            except EnvironmentNotFoundError:
                return

    async def _run_teardown(self, env_id: str, config: FleetConfig) -> None:
        """Best-effort removal of a deleted environment's fleet resources."""
        region = config.region or self.settings.fleet_default_region
        try:
            backend = self.fleet_backend_factory(region)
            errors = await asyncio.to_thread(backend.deprovision_environment, env_id, config)
        except FleetBackendError as e:
            errors = [str(e)]
        except Exception as e:
            logger.error(f"Unexpected error tearing down {env_id}: {e}", exc_info=True)
            errors = [str(e) or type(e).__name__]

        if errors:
            logger.warning(f"Teardown of {env_id} finished with errors: {errors}")
        self.audit_service.record_action(
            env_id,
            AuditAction.DEPROVISIONED,
            user_id=SYSTEM_USER,
            details={"errors": errors},
        )


# Global orchestrator instance
_provisioning_orchestrator: ProvisioningOrchestrator | None = None


def get_provisioning_orchestrator() -> ProvisioningOrchestrator:
    """Get the global ProvisioningOrchestrator instance."""
    global _provisioning_orchestrator
    if _provisioning_orchestrator is None:
        _provisioning_orchestrator = ProvisioningOrchestrator()
    return _provisioning_orchestrator


def reset_provisioning_orchestrator() -> None:
    """Reset the global ProvisioningOrchestrator instance (for testing)."""
    global _provisioning_orchestrator
    _provisioning_orchestrator = None

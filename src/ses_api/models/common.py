"""Common enums and types used across models."""

from enum import Enum


class EnvironmentStatus(str, Enum):
    """Status of an environment in its lifecycle.

    State machine transitions:
        PENDING -> PROVISIONING (provisioning requested)
        PROVISIONING -> RUNNING (all stages completed / backend succeeded)
        PROVISIONING -> ERROR (backend provisioning failed)
        RUNNING -> STOPPED (stop requested)
        STOPPED -> RUNNING (start requested)
        STOPPED -> PROVISIONING (re-provisioning requested)
        ERROR -> PROVISIONING (retry requested)
        any -> DELETED (record removed; only appears in the transition log)
    """

    PENDING = "pending"  # Created, nothing provisioned yet
    PROVISIONING = "provisioning"  # Workflow in flight
    RUNNING = "running"  # Provisioned and accruing uptime
    STOPPED = "stopped"  # Stopped by the user
    ERROR = "error"  # Provisioning failed
    DELETED = "deleted"  # Terminal pseudo-state


class AuditAction(str, Enum):
    """Type of auditable environment action."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    UPLOADED = "uploaded"
    PROVISIONING_REQUESTED = "provisioning_requested"
    PROVISIONING_FAILED = "provisioning_failed"
    DEPROVISIONED = "deprovisioned"


# Acting user recorded for actions initiated by background workflows
SYSTEM_USER = "system"

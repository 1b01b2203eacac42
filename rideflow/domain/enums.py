"""Domain enumerations and state-transition rules."""

import enum
from typing import NamedTuple


class RideStatus(str, enum.Enum):
    PENDING_ADMIN = "pending_admin"
    PENDING_PM = "pending_pm"
    PENDING_ADMIN_AFTER_PM = "pending_admin_after_pm"
    APPROVED = "approved"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REJECTED = "rejected"


class ActorRole(str, enum.Enum):
    USER = "user"
    DRIVER = "driver"
    PROJECT_MANAGER = "project_manager"
    ADMIN = "admin"


class ApprovalSlot(str, enum.Enum):
    PROJECT_MANAGER = "project_manager"
    ADMIN = "admin"


TERMINAL_STATUSES: frozenset[RideStatus] = frozenset(
    {RideStatus.COMPLETED, RideStatus.REJECTED}
)


class ApprovalStep(NamedTuple):
    next_status: RideStatus
    slot: ApprovalSlot


# Approval table: (actor role, current status) -> status after approval and
# the approval slot the actor signs.  A reject uses the same rows but always
# lands on REJECTED.
APPROVAL_TRANSITIONS: dict[tuple[ActorRole, RideStatus], ApprovalStep] = {
    (ActorRole.PROJECT_MANAGER, RideStatus.PENDING_PM): ApprovalStep(
        RideStatus.PENDING_ADMIN_AFTER_PM, ApprovalSlot.PROJECT_MANAGER
    ),
    (ActorRole.ADMIN, RideStatus.PENDING_ADMIN): ApprovalStep(
        RideStatus.APPROVED, ApprovalSlot.ADMIN
    ),
    (ActorRole.ADMIN, RideStatus.PENDING_ADMIN_AFTER_PM): ApprovalStep(
        RideStatus.APPROVED, ApprovalSlot.ADMIN
    ),
}

# Assignment: only an approved ride can receive a driver.
ASSIGNMENT_TRANSITIONS: dict[RideStatus, RideStatus] = {
    RideStatus.APPROVED: RideStatus.IN_PROGRESS,
}

# Driver-driven status updates: maps current status -> statuses the
# assigned driver may set.
DRIVER_TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    RideStatus.IN_PROGRESS: {RideStatus.COMPLETED},
}

DRIVER_SETTABLE_STATUSES: frozenset[RideStatus] = frozenset(
    {RideStatus.IN_PROGRESS, RideStatus.COMPLETED}
)

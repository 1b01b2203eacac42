"""
Ride Workflow Engine
====================

Owns the ride lifecycle::

    pending_admin ──admin──────────────────────────────┐
                                                       ├─> approved ─assign─> in_progress ─driver─> completed
    pending_pm ─pm─> pending_admin_after_pm ──admin────┘

    any pending_* ──(same actor as approve)──> rejected

Every transition is looked up in a table from ``enums`` rather than
decided by ad hoc conditionals, and every write is conditional on the
status the engine read (compare-and-swap through ``RideStore``).  A lost
race therefore surfaces as ``InvalidTransitionError`` instead of a silent
overwrite.

The engine trusts ``(actor_id, actor_role)`` verbatim; authentication is
the caller's business.  It does not notify anyone either: callers read
``requester_id`` and ``status`` off the returned ride.
"""

from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

from .distance import haversine_km
from .entities import Location, Ride
from .enums import (
    APPROVAL_TRANSITIONS,
    ASSIGNMENT_TRANSITIONS,
    DRIVER_SETTABLE_STATUSES,
    DRIVER_TRANSITIONS,
    ActorRole,
    RideStatus,
)
from .errors import (
    InvalidTransitionError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from .store import RideStore

logger = logging.getLogger(__name__)

APPROVAL_THRESHOLD_KM = 25.0

RoleLike = Union[ActorRole, str]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_role(value: RoleLike) -> ActorRole:
    if isinstance(value, ActorRole):
        return value
    try:
        return ActorRole(value)
    except ValueError:
        raise ValidationError(f"Unknown actor role: {value!r}") from None


def initial_status(distance_km: float, threshold_km: float = APPROVAL_THRESHOLD_KM) -> RideStatus:
    """Long rides (strictly above the threshold) go to the PM first."""
    if distance_km > threshold_km:
        return RideStatus.PENDING_PM
    return RideStatus.PENDING_ADMIN


def _usable_distance(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value > 0
    )


class RideWorkflowEngine:
    def __init__(
        self,
        store: RideStore,
        threshold_km: float = APPROVAL_THRESHOLD_KM,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.threshold_km = threshold_km
        self.clock = clock

    # ── Creation ──────────────────────────────────────────────────

    async def create_ride(
        self,
        requester_id: str,
        start_location: Any,
        end_location: Any,
        supplied_distance_km: Optional[float] = None,
    ) -> Ride:
        if not requester_id:
            raise ValidationError("requester_id is required")
        start = Location.parse(start_location, "start_location")
        end = Location.parse(end_location, "end_location")

        if _usable_distance(supplied_distance_km):
            distance_km = float(supplied_distance_km)
        else:
            distance_km = haversine_km(start.lat, start.lng, end.lat, end.lng)

        ride = Ride(
            id=uuid.uuid4().hex,
            requester_id=requester_id,
            start_location=start,
            end_location=end,
            distance_km=distance_km,
            status=initial_status(distance_km, self.threshold_km),
            created_at=self.clock(),
        )
        ride = await self.store.insert(ride)
        await self.store.commit()
        logger.info(
            "Ride %s created by %s (%.1f km, %s)",
            ride.id, requester_id, distance_km, ride.status.value,
        )
        return ride

    # ── Queries ───────────────────────────────────────────────────

    async def get_ride(self, ride_id: str) -> Ride:
        ride = await self.store.get(ride_id)
        if ride is None:
            raise NotFoundError(f"Ride {ride_id} not found")
        return ride

    async def list_rides_for_actor(
        self, actor_id: str, actor_role: RoleLike
    ) -> list[Ride]:
        role = parse_role(actor_role)
        if role is ActorRole.USER:
            return await self.store.list_by_requester(actor_id)
        if role is ActorRole.DRIVER:
            return await self.store.list_by_driver(actor_id)
        if role is ActorRole.PROJECT_MANAGER:
            return await self.store.list_by_status(RideStatus.PENDING_PM)
        return await self.store.list_all()

    async def pm_dashboard(self, actor_role: RoleLike) -> list[Ride]:
        """Every long-distance ride, whatever its status (read-only view)."""
        role = parse_role(actor_role)
        if role is not ActorRole.PROJECT_MANAGER:
            raise UnauthorizedError("Only project managers can view the PM dashboard")
        return await self.store.list_longer_than(self.threshold_km)

    # ── Approval ──────────────────────────────────────────────────

    async def approve(
        self, ride_id: str, actor_id: str, actor_role: RoleLike
    ) -> Ride:
        return await self._decide(ride_id, actor_id, actor_role, approved=True)

    async def reject(
        self,
        ride_id: str,
        actor_id: str,
        actor_role: RoleLike,
        reason: Optional[str] = None,
    ) -> Ride:
        return await self._decide(
            ride_id, actor_id, actor_role, approved=False, reason=reason
        )

    async def _decide(
        self,
        ride_id: str,
        actor_id: str,
        actor_role: RoleLike,
        approved: bool,
        reason: Optional[str] = None,
    ) -> Ride:
        role = parse_role(actor_role)
        ride = await self.get_ride(ride_id)
        expected = ride.status

        step = APPROVAL_TRANSITIONS.get((role, expected))
        if step is None:
            verb = "approve" if approved else "reject"
            raise InvalidTransitionError(
                role,
                expected,
                f"Cannot {verb} this ride. Role: {role.value}, Status: {expected.value}",
            )

        ride.sign(step.slot, approved, actor_id, self.clock())
        if approved:
            ride.status = step.next_status
        else:
            ride.status = RideStatus.REJECTED
            ride.rejection_reason = reason
        return await self._commit(ride, expected, role)

    # ── Assignment ────────────────────────────────────────────────

    async def assign_driver_and_vehicle(
        self,
        ride_id: str,
        actor_id: str,
        actor_role: RoleLike,
        driver_id: str,
        vehicle_id: Optional[str] = None,
    ) -> Ride:
        role = parse_role(actor_role)
        if role is not ActorRole.ADMIN:
            raise UnauthorizedError("Unauthorized - Admin access required")
        ride = await self.get_ride(ride_id)
        expected = ride.status
        next_status = ASSIGNMENT_TRANSITIONS.get(expected)
        if next_status is None:
            raise InvalidTransitionError(
                role,
                expected,
                f"Ride must be approved first. Current status: {expected.value}",
            )
        if not driver_id or not str(driver_id).strip():
            raise ValidationError("Driver ID is required")

        ride.driver_id = driver_id
        if vehicle_id:
            ride.vehicle_id = vehicle_id
        ride.assigned_at = self.clock()
        ride.status = next_status
        return await self._commit(ride, expected, role)

    # ── Driver updates ────────────────────────────────────────────

    async def update_ride_status(
        self,
        ride_id: str,
        actor_id: str,
        actor_role: RoleLike,
        new_status: Union[RideStatus, str],
    ) -> Ride:
        role = parse_role(actor_role)
        ride = await self.get_ride(ride_id)
        if role is not ActorRole.DRIVER or ride.driver_id != actor_id:
            raise UnauthorizedError("Only the assigned driver can update this ride")

        try:
            target = RideStatus(new_status)
        except ValueError:
            raise ValidationError(f"Invalid status: {new_status!r}") from None
        if target not in DRIVER_SETTABLE_STATUSES:
            raise ValidationError(f"Invalid status: {target.value}")

        expected = ride.status
        if target not in DRIVER_TRANSITIONS.get(expected, set()):
            raise InvalidTransitionError(
                role,
                expected,
                f"Cannot move ride from {expected.value} to {target.value}",
            )

        ride.status = target
        return await self._commit(ride, expected, role)

    # ── Internals ─────────────────────────────────────────────────

    async def _commit(
        self, ride: Ride, expected: RideStatus, role: ActorRole
    ) -> Ride:
        saved = await self.store.save_transition(ride, expected)
        if saved is None:
            # Someone else moved the ride between our read and our write.
            current = await self.store.get(ride.id)
            status = current.status if current else expected
            raise InvalidTransitionError(
                role,
                status,
                f"Ride {ride.id} changed concurrently; expected status "
                f"{expected.value}, found {getattr(status, 'value', status)}",
            )
        await self.store.commit()
        logger.info(
            "Ride %s: %s -> %s by %s", saved.id, expected.value, saved.status.value, role.value
        )
        return saved

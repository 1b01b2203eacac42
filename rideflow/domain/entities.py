"""
Domain entities.

``Ride`` is the only entity with lifecycle logic.  Status changes are
driven by ``RideWorkflowEngine`` through the tables in ``enums``; the
entity itself only knows how to sign an approval slot and whether it has
reached a terminal state.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from .enums import TERMINAL_STATUSES, ApprovalSlot, RideStatus
from .errors import ValidationError


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    lat: float
    lng: float
    address: str

    @classmethod
    def parse(cls, raw: Any, label: str) -> "Location":
        """Build a ``Location`` from a mapping or pass one through.

        Raises ``ValidationError`` if the location, its coordinates or its
        address are missing or out of range.
        """
        if raw is None:
            raise ValidationError(f"{label} is required")
        if isinstance(raw, Location):
            lat, lng, address = raw.lat, raw.lng, raw.address
        elif isinstance(raw, Mapping):
            lat, lng, address = raw.get("lat"), raw.get("lng"), raw.get("address")
        else:
            raise ValidationError(f"{label} must be an object with lat, lng, address")

        if not _is_number(lat) or not _is_number(lng):
            raise ValidationError(f"Coordinates are required for {label}")
        if not -90 <= lat <= 90 or not -180 <= lng <= 180:
            raise ValidationError(f"Coordinates of {label} are out of range")
        if not isinstance(address, str) or not address.strip():
            raise ValidationError(f"Address is required for {label}")
        return cls(lat=float(lat), lng=float(lng), address=address)


@dataclass(frozen=True)
class ApprovalRecord:
    approved: bool
    approved_at: datetime
    approved_by: str


@dataclass
class Approval:
    project_manager: Optional[ApprovalRecord] = None
    admin: Optional[ApprovalRecord] = None


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Ride:
    requester_id: str
    start_location: Location
    end_location: Location
    distance_km: float
    status: RideStatus
    created_at: datetime
    id: Optional[str] = None
    approval: Approval = field(default_factory=Approval)
    driver_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    assigned_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def sign(
        self, slot: ApprovalSlot, approved: bool, actor_id: str, at: datetime
    ) -> None:
        """Write the approval slot for *slot*.  Slots are never cleared."""
        record = ApprovalRecord(approved=approved, approved_at=at, approved_by=actor_id)
        if slot is ApprovalSlot.PROJECT_MANAGER:
            self.approval.project_manager = record
        else:
            self.approval.admin = record


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )

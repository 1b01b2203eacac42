"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from rideflow.domain.distance import estimate_travel_minutes
from rideflow.domain.entities import ApprovalRecord, Location, Ride


# ── Requests ──────────────────────────────────────────────────────────


class LocationIn(BaseModel):
    # strict: numeric strings are refused rather than coerced
    lat: Optional[float] = Field(None, strict=True)
    lng: Optional[float] = Field(None, strict=True)
    address: Optional[str] = None


class RideCreateRequest(BaseModel):
    start_location: Optional[LocationIn] = None
    end_location: Optional[LocationIn] = None
    distance_km: Optional[float] = Field(
        None,
        description="Road distance from the client's maps provider. "
        "Falls back to great-circle distance when absent or not positive.",
    )


class RejectRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class AssignRequest(BaseModel):
    driver_id: str = ""
    vehicle_id: Optional[str] = None


class StatusUpdateRequest(BaseModel):
    status: str


# ── Responses ─────────────────────────────────────────────────────────


class LocationOut(BaseModel):
    lat: float
    lng: float
    address: str


class ApprovalRecordOut(BaseModel):
    approved: bool
    approved_at: datetime
    approved_by: str


class ApprovalOut(BaseModel):
    project_manager: Optional[ApprovalRecordOut] = None
    admin: Optional[ApprovalRecordOut] = None


class RideResponse(BaseModel):
    id: str
    requester_id: str
    driver_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    distance_km: float
    estimated_minutes: int
    start_location: LocationOut
    end_location: LocationOut
    status: str
    approval: ApprovalOut
    rejection_reason: Optional[str] = None
    assigned_at: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_entity(cls, ride: Ride, average_speed_kmh: float) -> "RideResponse":
        return cls(
            id=ride.id,
            requester_id=ride.requester_id,
            driver_id=ride.driver_id,
            vehicle_id=ride.vehicle_id,
            distance_km=ride.distance_km,
            estimated_minutes=estimate_travel_minutes(
                ride.distance_km, average_speed_kmh
            ),
            start_location=_location(ride.start_location),
            end_location=_location(ride.end_location),
            status=ride.status.value,
            approval=ApprovalOut(
                project_manager=_record(ride.approval.project_manager),
                admin=_record(ride.approval.admin),
            ),
            rejection_reason=ride.rejection_reason,
            assigned_at=ride.assigned_at,
            created_at=ride.created_at,
        )


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str


def _location(loc: Location) -> LocationOut:
    return LocationOut(lat=loc.lat, lng=loc.lng, address=loc.address)


def _record(record: Optional[ApprovalRecord]) -> Optional[ApprovalRecordOut]:
    if record is None:
        return None
    return ApprovalRecordOut(
        approved=record.approved,
        approved_at=record.approved_at,
        approved_by=record.approved_by,
    )

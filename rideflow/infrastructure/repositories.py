"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

``RideRepository`` receives an ``AsyncSession`` (unit-of-work), implements
``RideStore`` and translates between ``RideModel`` rows and ``Ride``
entities.  Any SQLAlchemy failure is re-raised as ``StorageError``.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import RideModel
from rideflow.domain.entities import Approval, ApprovalRecord, Location, Ride
from rideflow.domain.enums import RideStatus
from rideflow.domain.errors import StorageError
from rideflow.domain.store import RideStore


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise StorageError(f"Ride store failed to {action}: {exc}") from exc


class RideRepository(RideStore):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, ride_id: str) -> Optional[Ride]:
        with _storage_errors("load ride"):
            result = await self.session.execute(
                select(RideModel)
                .where(RideModel.id == ride_id)
                .execution_options(populate_existing=True)
            )
            row = result.scalar_one_or_none()
        return to_entity(row) if row is not None else None

    async def insert(self, ride: Ride) -> Ride:
        row = RideModel(id=ride.id, **_mutable_columns(ride), **_fixed_columns(ride))
        with _storage_errors("insert ride"):
            self.session.add(row)
            await self.session.flush()
        return to_entity(row)

    async def save_transition(
        self, ride: Ride, expected_status: RideStatus
    ) -> Optional[Ride]:
        """UPDATE ... WHERE id = :id AND status = :expected."""
        with _storage_errors("update ride"):
            result = await self.session.execute(
                update(RideModel)
                .where(
                    RideModel.id == ride.id,
                    RideModel.status == expected_status,
                )
                .values(**_mutable_columns(ride))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return None
        return await self.get(ride.id)

    async def list_by_requester(self, requester_id: str) -> list[Ride]:
        return await self._list(RideModel.requester_id == requester_id)

    async def list_by_driver(self, driver_id: str) -> list[Ride]:
        return await self._list(RideModel.driver_id == driver_id)

    async def list_by_status(self, status: RideStatus) -> list[Ride]:
        return await self._list(RideModel.status == status)

    async def list_longer_than(self, distance_km: float) -> list[Ride]:
        return await self._list(RideModel.distance_km > distance_km)

    async def list_all(self) -> list[Ride]:
        return await self._list()

    async def commit(self) -> None:
        with _storage_errors("commit"):
            await self.session.commit()

    async def _list(self, *criteria) -> list[Ride]:
        query = (
            select(RideModel)
            .where(*criteria)
            .order_by(RideModel.created_at.desc())
            .execution_options(populate_existing=True)
        )
        with _storage_errors("list rides"):
            result = await self.session.execute(query)
            rows = result.scalars().all()
        return [to_entity(r) for r in rows]


# ── Mapping ───────────────────────────────────────────────────────────


def _fixed_columns(ride: Ride) -> dict:
    return {
        "requester_id": ride.requester_id,
        "start_lat": ride.start_location.lat,
        "start_lng": ride.start_location.lng,
        "start_address": ride.start_location.address,
        "end_lat": ride.end_location.lat,
        "end_lng": ride.end_location.lng,
        "end_address": ride.end_location.address,
        "distance_km": ride.distance_km,
        "created_at": ride.created_at,
    }


def _mutable_columns(ride: Ride) -> dict:
    pm, admin = ride.approval.project_manager, ride.approval.admin
    return {
        "status": ride.status,
        "pm_approved": pm.approved if pm else None,
        "pm_approved_at": pm.approved_at if pm else None,
        "pm_approved_by": pm.approved_by if pm else None,
        "admin_approved": admin.approved if admin else None,
        "admin_approved_at": admin.approved_at if admin else None,
        "admin_approved_by": admin.approved_by if admin else None,
        "rejection_reason": ride.rejection_reason,
        "driver_id": ride.driver_id,
        "vehicle_id": ride.vehicle_id,
        "assigned_at": ride.assigned_at,
    }


def _record(approved, approved_at, approved_by) -> Optional[ApprovalRecord]:
    if approved is None:
        return None
    return ApprovalRecord(
        approved=approved, approved_at=approved_at, approved_by=approved_by
    )


def to_entity(row: RideModel) -> Ride:
    return Ride(
        id=row.id,
        requester_id=row.requester_id,
        start_location=Location(row.start_lat, row.start_lng, row.start_address),
        end_location=Location(row.end_lat, row.end_lng, row.end_address),
        distance_km=row.distance_km,
        status=RideStatus(row.status),
        created_at=row.created_at,
        approval=Approval(
            project_manager=_record(
                row.pm_approved, row.pm_approved_at, row.pm_approved_by
            ),
            admin=_record(
                row.admin_approved, row.admin_approved_at, row.admin_approved_by
            ),
        ),
        driver_id=row.driver_id,
        vehicle_id=row.vehicle_id,
        assigned_at=row.assigned_at,
        rejection_reason=row.rejection_reason,
    )

"""
Ride store contract consumed by the workflow engine.

Implementations live in ``rideflow.infrastructure``; the engine only ever
sees this interface.  ``save_transition`` is a conditional write: it must
persist the ride only if the stored status still equals
*expected_status*, and report whether it did.  ``commit`` makes the
writes durable before the engine hands a ride back to its caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from .entities import Ride
from .enums import RideStatus


class RideStore(ABC):
    @abstractmethod
    async def get(self, ride_id: str) -> Optional[Ride]: ...

    @abstractmethod
    async def insert(self, ride: Ride) -> Ride: ...

    @abstractmethod
    async def save_transition(
        self, ride: Ride, expected_status: RideStatus
    ) -> Optional[Ride]:
        """Persist *ride* if its stored status is *expected_status*.

        Returns the stored ride, or ``None`` when the precondition no
        longer holds.
        """

    @abstractmethod
    async def list_by_requester(self, requester_id: str) -> list[Ride]: ...

    @abstractmethod
    async def list_by_driver(self, driver_id: str) -> list[Ride]: ...

    @abstractmethod
    async def list_by_status(self, status: RideStatus) -> list[Ride]: ...

    @abstractmethod
    async def list_longer_than(self, distance_km: float) -> list[Ride]: ...

    @abstractmethod
    async def list_all(self) -> list[Ride]: ...

    @abstractmethod
    async def commit(self) -> None:
        """Make every write so far durable; raise ``StorageError`` if it fails."""

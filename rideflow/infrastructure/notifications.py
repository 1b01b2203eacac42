"""
Requester notifications.

The workflow engine never notifies anyone; the API layer calls a
``RideNotifier`` after a successful approve / reject.  The default
``LoggingNotifier`` only writes the message to the log -- swap in an
email / SMS / push implementation by overriding the ``get_notifier``
dependency.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from rideflow.domain.entities import Ride
from rideflow.domain.enums import RideStatus

logger = logging.getLogger(__name__)

MESSAGES: dict[RideStatus, str] = {
    RideStatus.PENDING_ADMIN_AFTER_PM: (
        "Your ride was approved by the project manager and is awaiting admin approval."
    ),
    RideStatus.APPROVED: "Your ride has been approved. A driver will be assigned shortly.",
    RideStatus.REJECTED: "Your ride request has been rejected.",
}


@dataclass(frozen=True)
class RideNotification:
    user_id: str
    ride_id: str
    status: RideStatus
    message: str


def build_notification(ride: Ride) -> RideNotification:
    message = MESSAGES.get(ride.status, f"Your ride is now {ride.status.value}.")
    if ride.status is RideStatus.REJECTED and ride.rejection_reason:
        message = f"{message} Reason: {ride.rejection_reason}"
    return RideNotification(
        user_id=ride.requester_id,
        ride_id=ride.id,
        status=ride.status,
        message=message,
    )


class RideNotifier(ABC):
    @abstractmethod
    async def notify(self, notification: RideNotification) -> None: ...


class LoggingNotifier(RideNotifier):
    async def notify(self, notification: RideNotification) -> None:
        logger.info(
            "Notify user %s about ride %s (%s): %s",
            notification.user_id,
            notification.ride_id,
            notification.status.value,
            notification.message,
        )

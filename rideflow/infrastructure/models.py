"""
SQLAlchemy ORM models.

Tables
------
* ``rides`` -- ride requests with their approval trail and assignment

The approval record is stored flat (``pm_*`` / ``admin_*`` columns): a
slot is present when its ``*_approved`` column is not NULL.

Indexes
-------
* **B-Tree** on ``status``, ``requester_id``, ``driver_id`` and
  ``distance_km`` -- the only filters the workflow engine issues.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    Index,
    String,
    Text,
)

from .database import Base
from rideflow.domain.enums import RideStatus


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(String(32), primary_key=True)
    requester_id = Column(String(64), nullable=False)

    start_lat = Column(Float, nullable=False)
    start_lng = Column(Float, nullable=False)
    start_address = Column(String(500), nullable=False)
    end_lat = Column(Float, nullable=False)
    end_lng = Column(Float, nullable=False)
    end_address = Column(String(500), nullable=False)
    distance_km = Column(Float, nullable=False)

    status = Column(
        Enum(
            RideStatus,
            name="ridestatus",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )

    pm_approved = Column(Boolean, nullable=True)
    pm_approved_at = Column(DateTime(timezone=True), nullable=True)
    pm_approved_by = Column(String(64), nullable=True)
    admin_approved = Column(Boolean, nullable=True)
    admin_approved_at = Column(DateTime(timezone=True), nullable=True)
    admin_approved_by = Column(String(64), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    driver_id = Column(String(64), nullable=True)
    vehicle_id = Column(String(64), nullable=True)
    assigned_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("distance_km >= 0", name="ck_rides_distance_non_negative"),
        Index("idx_rides_status", "status"),
        Index("idx_rides_requester", "requester_id"),
        Index("idx_rides_driver", "driver_id"),
        Index("idx_rides_distance", "distance_km"),
    )

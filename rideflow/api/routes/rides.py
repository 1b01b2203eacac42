"""
Ride endpoints
==============

POST  /api/v1/rides                  -- request a ride (user role)
GET   /api/v1/rides                  -- rides visible to the calling actor
GET   /api/v1/rides/pm-dashboard     -- long-distance rides, any status (PM)
GET   /api/v1/rides/{ride_id}        -- single ride
POST  /api/v1/rides/{ride_id}/approve
POST  /api/v1/rides/{ride_id}/reject
POST  /api/v1/rides/{ride_id}/assign -- attach driver / vehicle (admin)
PATCH /api/v1/rides/{ride_id}/status -- driver progress update

Workflow errors raised by the engine are turned into HTTP responses by the
exception handlers registered in ``rideflow.api.app``.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request

from rideflow.api.dependencies import (
    Actor,
    get_actor,
    get_engine,
    get_notifier,
    get_settings,
)
from rideflow.api.middleware import RATE_LIMIT, limiter
from rideflow.api.schemas import (
    AssignRequest,
    ErrorResponse,
    RejectRequest,
    RideCreateRequest,
    RideResponse,
    StatusUpdateRequest,
)
from rideflow.config import Settings
from rideflow.domain.entities import Ride
from rideflow.domain.enums import ActorRole
from rideflow.domain.errors import UnauthorizedError
from rideflow.domain.workflow import RideWorkflowEngine
from rideflow.infrastructure.notifications import RideNotifier, build_notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rides", tags=["rides"])

_TRANSITION_ERRORS = {
    403: {"model": ErrorResponse, "description": "Actor may not perform this action"},
    404: {"model": ErrorResponse, "description": "Ride not found"},
    409: {"model": ErrorResponse, "description": "Not allowed in the ride's current status"},
}


def _out(ride: Ride, settings: Settings) -> RideResponse:
    return RideResponse.from_entity(ride, settings.average_speed_kmh)


async def _notify_requester(notifier: RideNotifier, ride: Ride) -> None:
    # The decision is already made; a failed notification must not undo it.
    try:
        await notifier.notify(build_notification(ride))
    except Exception:
        logger.exception("Failed to notify requester of ride %s", ride.id)


@router.post(
    "",
    status_code=201,
    response_model=RideResponse,
    summary="Request a ride",
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
@limiter.limit(RATE_LIMIT)
async def create_ride(
    request: Request,
    body: RideCreateRequest,
    actor: Actor = Depends(get_actor),
    engine: RideWorkflowEngine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
):
    if actor.role is not ActorRole.USER:
        raise UnauthorizedError("Only users can request rides")
    ride = await engine.create_ride(
        actor.id,
        body.start_location.model_dump() if body.start_location else None,
        body.end_location.model_dump() if body.end_location else None,
        body.distance_km,
    )
    return _out(ride, settings)


@router.get(
    "",
    response_model=list[RideResponse],
    summary="List rides visible to the calling actor",
)
@limiter.limit(RATE_LIMIT)
async def list_rides(
    request: Request,
    actor: Actor = Depends(get_actor),
    engine: RideWorkflowEngine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
):
    rides = await engine.list_rides_for_actor(actor.id, actor.role)
    return [_out(r, settings) for r in rides]


@router.get(
    "/pm-dashboard",
    response_model=list[RideResponse],
    summary="Long-distance rides in any status (project managers only)",
    responses={403: {"model": ErrorResponse}},
)
@limiter.limit(RATE_LIMIT)
async def pm_dashboard(
    request: Request,
    actor: Actor = Depends(get_actor),
    engine: RideWorkflowEngine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
):
    rides = await engine.pm_dashboard(actor.role)
    logger.info("PM dashboard: %d long-distance rides", len(rides))
    return [_out(r, settings) for r in rides]


@router.get(
    "/{ride_id}",
    response_model=RideResponse,
    summary="Get a single ride",
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit(RATE_LIMIT)
async def get_ride(
    request: Request,
    ride_id: str,
    actor: Actor = Depends(get_actor),
    engine: RideWorkflowEngine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
):
    return _out(await engine.get_ride(ride_id), settings)


@router.post(
    "/{ride_id}/approve",
    response_model=RideResponse,
    summary="Approve a ride at the caller's approval stage",
    responses=_TRANSITION_ERRORS,
)
@limiter.limit(RATE_LIMIT)
async def approve_ride(
    request: Request,
    ride_id: str,
    actor: Actor = Depends(get_actor),
    engine: RideWorkflowEngine = Depends(get_engine),
    notifier: RideNotifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
):
    ride = await engine.approve(ride_id, actor.id, actor.role)
    await _notify_requester(notifier, ride)
    return _out(ride, settings)


@router.post(
    "/{ride_id}/reject",
    response_model=RideResponse,
    summary="Reject a ride at the caller's approval stage",
    responses=_TRANSITION_ERRORS,
)
@limiter.limit(RATE_LIMIT)
async def reject_ride(
    request: Request,
    ride_id: str,
    body: Optional[RejectRequest] = None,
    actor: Actor = Depends(get_actor),
    engine: RideWorkflowEngine = Depends(get_engine),
    notifier: RideNotifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
):
    reason = body.reason if body else None
    ride = await engine.reject(ride_id, actor.id, actor.role, reason)
    await _notify_requester(notifier, ride)
    return _out(ride, settings)


@router.post(
    "/{ride_id}/assign",
    response_model=RideResponse,
    summary="Assign a driver (and optionally a vehicle) to an approved ride",
    responses=_TRANSITION_ERRORS,
)
@limiter.limit(RATE_LIMIT)
async def assign_ride(
    request: Request,
    ride_id: str,
    body: AssignRequest,
    actor: Actor = Depends(get_actor),
    engine: RideWorkflowEngine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
):
    ride = await engine.assign_driver_and_vehicle(
        ride_id, actor.id, actor.role, body.driver_id, body.vehicle_id
    )
    return _out(ride, settings)


@router.patch(
    "/{ride_id}/status",
    response_model=RideResponse,
    summary="Driver progress update",
    description="Only the assigned driver may call this; "
    "an in-progress ride can be marked completed.",
    responses=_TRANSITION_ERRORS,
)
@limiter.limit(RATE_LIMIT)
async def update_ride_status(
    request: Request,
    ride_id: str,
    body: StatusUpdateRequest,
    actor: Actor = Depends(get_actor),
    engine: RideWorkflowEngine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
):
    ride = await engine.update_ride_status(ride_id, actor.id, actor.role, body.status)
    return _out(ride, settings)

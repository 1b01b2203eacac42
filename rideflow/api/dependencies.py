"""FastAPI dependency injection helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator, Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from rideflow.config import Settings
from rideflow.domain.enums import ActorRole
from rideflow.domain.workflow import RideWorkflowEngine
from rideflow.infrastructure.notifications import LoggingNotifier, RideNotifier
from rideflow.infrastructure.repositories import RideRepository


@dataclass(frozen=True)
class Actor:
    id: str
    role: ActorRole


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield an async DB session; commit on success, rollback on error."""
    async with request.app.state.db.session() as session:
        yield session


def get_engine(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> RideWorkflowEngine:
    return RideWorkflowEngine(
        RideRepository(db), threshold_km=settings.approval_threshold_km
    )


def get_notifier() -> RideNotifier:
    return LoggingNotifier()


def get_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
) -> Actor:
    """Identity supplied by the upstream auth proxy; trusted verbatim."""
    if not x_actor_id or not x_actor_role:
        raise HTTPException(status_code=401, detail="Missing actor identity")
    try:
        role = ActorRole(x_actor_role)
    except ValueError:
        raise HTTPException(
            status_code=400, detail=f"Unknown actor role: {x_actor_role}"
        ) from None
    return Actor(id=x_actor_id, role=role)

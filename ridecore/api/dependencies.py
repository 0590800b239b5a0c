"""FastAPI dependency injection helpers."""

import uuid
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from ridecore.domain.errors import Unauthorized
from ridecore.infrastructure.database import async_session_factory
from ridecore.realtime.hub import RealtimeHub, hub
from ridecore.services.lifecycle import OrderLifecycle
from ridecore.services.plans import PlanService


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_current_actor(
    x_actor_id: Optional[str] = Header(None, description="Actor UUID set by the auth gateway"),
) -> uuid.UUID:
    """Resolve the caller.  Credentials are checked upstream, not here."""
    if not x_actor_id:
        raise Unauthorized("Missing X-Actor-Id header")
    try:
        return uuid.UUID(x_actor_id)
    except ValueError as exc:
        raise Unauthorized("X-Actor-Id must be a UUID") from exc


def get_hub() -> RealtimeHub:
    return hub


async def get_lifecycle(
    db: AsyncSession = Depends(get_db),
    realtime: RealtimeHub = Depends(get_hub),
) -> OrderLifecycle:
    return OrderLifecycle(db, hub=realtime)


async def get_plan_service(db: AsyncSession = Depends(get_db)) -> PlanService:
    return PlanService(db)

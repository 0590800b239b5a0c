"""
Live channel
============

WS /ws?userId={uuid}&role=rider|driver

Registers the socket with the realtime hub (replacing any previous socket
for the same user and role) and relays inbound location frames::

    {"type": "location", "orderId": "...", "lat": 40.18, "lng": 44.51}

Location frames go through ``OrderLifecycle.update_location``, so they are
stored on the order and forwarded to the other party.
"""

import logging
import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, WebSocket
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ridecore.api.dependencies import get_hub
from ridecore.domain.enums import ActorRole
from ridecore.infrastructure.database import async_session_factory
from ridecore.realtime.hub import LiveConnection, MessageHandler, RealtimeHub
from ridecore.realtime.transport import WebSocketTransport
from ridecore.services.lifecycle import OrderLifecycle

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])

# Policy violation: bad handshake parameters
WS_POLICY_VIOLATION = 1008


class LocationFrame(BaseModel):
    type: Literal["location"]
    order_id: uuid.UUID = Field(alias="orderId")
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


def location_handler(
    realtime: RealtimeHub,
    session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
) -> MessageHandler:
    async def handle(conn: LiveConnection, data: bytes) -> None:
        frame = LocationFrame.model_validate_json(data)
        async with session_factory() as session:
            await OrderLifecycle(session, hub=realtime).update_location(
                conn.actor_id, frame.order_id, frame.lat, frame.lng
            )

    return handle


def _parse_role(role: str) -> ActorRole:
    # Older clients identify riders as "user"
    return ActorRole.RIDER if role == "user" else ActorRole(role)


@router.websocket("/ws")
async def live_channel(
    websocket: WebSocket,
    user_id: Optional[str] = Query(None, alias="userId"),
    role: str = Query(ActorRole.RIDER.value),
    realtime: RealtimeHub = Depends(get_hub),
):
    try:
        actor_id = uuid.UUID(user_id or "")
        actor_role = _parse_role(role)
    except ValueError:
        await websocket.close(code=WS_POLICY_VIOLATION)
        return

    await websocket.accept()
    conn = await realtime.connect(actor_id, actor_role, WebSocketTransport(websocket))
    await realtime.serve(conn, location_handler(realtime))
    logger.debug("Live channel for %s %s ended", actor_role.value, actor_id)

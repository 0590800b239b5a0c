"""
Order endpoints
===============

POST /api/v1/orders/estimate              -- price a trip, nothing stored
POST /api/v1/orders/request               -- create an order and search for a driver
GET  /api/v1/orders/{order_id}            -- current state (parties only)
POST /api/v1/orders/accept/{order_id}     -- finalize stops / payment / options
POST /api/v1/orders/cancel/{order_id}     -- cancel a non-terminal order
POST /api/v1/orders/driver/accept/{order_id} -- assigned driver starts the trip
POST /api/v1/orders/complete/{order_id}   -- finish the trip
POST /api/v1/orders/rate/{order_id}       -- requester rates a completed trip
POST /api/v1/orders/{order_id}/location   -- relay a live position

All endpoints require the ``X-Actor-Id`` header.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Request

from ridecore.api.dependencies import get_current_actor, get_lifecycle
from ridecore.api.middleware import limiter
from ridecore.api.schemas import (
    AcceptOrderRequest,
    CancelRequest,
    EstimateRequest,
    EstimateResponse,
    LocationUpdate,
    OrderRequest,
    OrderResponse,
    RatingRequest,
)
from ridecore.config import settings
from ridecore.services.lifecycle import OrderLifecycle

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post(
    "/estimate",
    response_model=EstimateResponse,
    summary="Estimate distance, ETA and price",
    dependencies=[Depends(get_current_actor)],
)
@limiter.limit(settings.rate_limit)
async def estimate(
    request: Request,
    body: EstimateRequest,
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    est = lifecycle.estimate(
        body.pickup_lat,
        body.pickup_lng,
        body.dest_lat,
        body.dest_lng,
        vehicle_type=body.vehicle_type,
        tariff=body.tariff,
        pet=body.pet_allowed,
        child=body.child_seat,
    )
    return EstimateResponse(
        distance_km=est.distance_km, eta_minutes=est.eta_minutes, price=est.price
    )


@router.post(
    "/request",
    status_code=201,
    response_model=OrderResponse,
    summary="Request an order",
    description=(
        "Creates the order in ``searching`` and assigns the first available "
        "driver, or parks it in ``scheduled`` when ``scheduled_for`` is in "
        "the future."
    ),
)
@limiter.limit(settings.rate_limit)
async def request_order(
    request: Request,
    body: OrderRequest,
    actor_id: uuid.UUID = Depends(get_current_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.request_order(actor_id, body.to_draft())


@router.get("/{order_id}", response_model=OrderResponse, summary="Get an order")
@limiter.limit(settings.rate_limit)
async def get_order(
    request: Request,
    order_id: uuid.UUID,
    actor_id: uuid.UUID = Depends(get_current_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.get_order(actor_id, order_id)


@router.post(
    "/accept/{order_id}",
    response_model=OrderResponse,
    summary="Finalize an order and retry matching",
)
@limiter.limit(settings.rate_limit)
async def accept_order(
    request: Request,
    order_id: uuid.UUID,
    body: AcceptOrderRequest,
    actor_id: uuid.UUID = Depends(get_current_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.accept_order(actor_id, order_id, body.to_update())


@router.post(
    "/cancel/{order_id}",
    response_model=OrderResponse,
    summary="Cancel an order",
    description="Terminal orders (completed / cancelled) answer 409.",
)
@limiter.limit(settings.rate_limit)
async def cancel_order(
    request: Request,
    order_id: uuid.UUID,
    body: Optional[CancelRequest] = None,
    actor_id: uuid.UUID = Depends(get_current_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    reason = body.reason if body else None
    return await lifecycle.cancel_order(actor_id, order_id, reason)


@router.post(
    "/driver/accept/{order_id}",
    response_model=OrderResponse,
    summary="Assigned driver starts the trip",
)
@limiter.limit(settings.rate_limit)
async def driver_accept(
    request: Request,
    order_id: uuid.UUID,
    actor_id: uuid.UUID = Depends(get_current_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.driver_accept(actor_id, order_id)


@router.post(
    "/complete/{order_id}", response_model=OrderResponse, summary="Complete the trip"
)
@limiter.limit(settings.rate_limit)
async def complete_order(
    request: Request,
    order_id: uuid.UUID,
    actor_id: uuid.UUID = Depends(get_current_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.complete(actor_id, order_id)


@router.post(
    "/rate/{order_id}", response_model=OrderResponse, summary="Rate a completed trip"
)
@limiter.limit(settings.rate_limit)
async def rate_order(
    request: Request,
    order_id: uuid.UUID,
    body: RatingRequest,
    actor_id: uuid.UUID = Depends(get_current_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.rate(actor_id, order_id, body.rating, body.review)


@router.post(
    "/{order_id}/location",
    response_model=OrderResponse,
    summary="Update the live location for an order",
)
@limiter.limit(settings.rate_limit)
async def update_location(
    request: Request,
    order_id: uuid.UUID,
    body: LocationUpdate,
    actor_id: uuid.UUID = Depends(get_current_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.update_location(actor_id, order_id, body.lat, body.lng)

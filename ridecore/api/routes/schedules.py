"""
Recurring plan endpoints
========================

POST /api/v1/schedules -- create a weekly plan (entries are immutable)
GET  /api/v1/schedules -- list the caller's plans
"""

import uuid

from fastapi import APIRouter, Depends, Request

from ridecore.api.dependencies import get_current_actor, get_plan_service
from ridecore.api.middleware import limiter
from ridecore.api.schemas import CreatePlanRequest, PlanResponse
from ridecore.config import settings
from ridecore.services.plans import PlanService

router = APIRouter(prefix="/schedules", tags=["schedules"])


@router.post(
    "",
    status_code=201,
    response_model=PlanResponse,
    summary="Create a recurring plan",
)
@limiter.limit(settings.rate_limit)
async def create_plan(
    request: Request,
    body: CreatePlanRequest,
    actor_id: uuid.UUID = Depends(get_current_actor),
    plans: PlanService = Depends(get_plan_service),
):
    return await plans.create_plan(
        actor_id, body.name, [e.to_entry() for e in body.entries]
    )


@router.get("", response_model=list[PlanResponse], summary="List my recurring plans")
@limiter.limit(settings.rate_limit)
async def list_plans(
    request: Request,
    actor_id: uuid.UUID = Depends(get_current_actor),
    plans: PlanService = Depends(get_plan_service),
):
    return await plans.list_plans(actor_id)

"""Recurring plan creation and listing."""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ridecore.domain.entities import PlanEntry
from ridecore.domain.errors import InvalidInput, Unauthorized
from ridecore.infrastructure.models import ScheduledPlanModel
from ridecore.infrastructure.repositories import PlanRepository, UserRepository


class PlanService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.plans = PlanRepository(session)
        self.users = UserRepository(session)

    async def create_plan(
        self,
        actor_id: Optional[uuid.UUID],
        name: Optional[str],
        entries: list[PlanEntry],
    ) -> ScheduledPlanModel:
        """Store a plan; entries are fixed from here on."""
        if actor_id is None or await self.users.get_by_id(actor_id) is None:
            raise Unauthorized("Caller identity could not be resolved")
        if not entries:
            raise InvalidInput("Entries required")
        for entry in entries:
            entry.time_of_day()

        plan = ScheduledPlanModel(
            id=uuid.uuid4(),
            user_id=actor_id,
            name=name,
            entries=[e.to_dict() for e in entries],
        )
        await self.plans.create(plan)
        await self.session.commit()
        return plan

    async def list_plans(self, actor_id: uuid.UUID) -> list[ScheduledPlanModel]:
        return await self.plans.list_for_user(actor_id)

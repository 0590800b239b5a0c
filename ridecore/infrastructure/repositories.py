"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Repositories flush; committing is the
caller's decision.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    OrderModel,
    PlanOccurrenceModel,
    ScheduledPlanModel,
    UserModel,
)
from ridecore.domain.entities import OrderParties


class OrderRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, order: OrderModel) -> OrderModel:
        self.session.add(order)
        await self.session.flush()
        return order

    async def get_by_id(self, order_id: uuid.UUID) -> Optional[OrderModel]:
        return await self.session.get(OrderModel, order_id)

    async def get_for_update(self, order_id: uuid.UUID) -> Optional[OrderModel]:
        """SELECT ... FOR UPDATE so other processes wait on this row."""
        result = await self.session.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_parties(self, order_id: uuid.UUID) -> Optional[OrderParties]:
        result = await self.session.execute(
            select(OrderModel.user_id, OrderModel.driver_id).where(
                OrderModel.id == order_id
            )
        )
        row = result.one_or_none()
        if row is None:
            return None
        return OrderParties(rider_id=row.user_id, driver_id=row.driver_id)


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)


class PlanRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, plan: ScheduledPlanModel) -> ScheduledPlanModel:
        self.session.add(plan)
        await self.session.flush()
        return plan

    async def list_for_user(self, user_id: uuid.UUID) -> list[ScheduledPlanModel]:
        result = await self.session.execute(
            select(ScheduledPlanModel)
            .where(ScheduledPlanModel.user_id == user_id)
            .order_by(ScheduledPlanModel.created_at)
        )
        return list(result.scalars().all())

    async def list_all(self) -> list[ScheduledPlanModel]:
        result = await self.session.execute(
            select(ScheduledPlanModel).order_by(ScheduledPlanModel.created_at)
        )
        return list(result.scalars().all())


class PlanOccurrenceRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def exists(
        self, plan_id: uuid.UUID, entry_index: int, occurrence_date: date
    ) -> bool:
        result = await self.session.execute(
            select(PlanOccurrenceModel.id).where(
                PlanOccurrenceModel.plan_id == plan_id,
                PlanOccurrenceModel.entry_index == entry_index,
                PlanOccurrenceModel.occurrence_date == occurrence_date,
            )
        )
        return result.first() is not None

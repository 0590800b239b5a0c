"""
Driver directory -- the read-only snapshot the matching policy consumes.

A candidate is a user flagged ``is_driver`` whose driver profile has been
approved.  The snapshot is read through the caller's session, so the
assignment that follows lands in the same transaction.
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import DriverProfileModel, UserModel
from ridecore.domain.entities import DriverCandidate
from ridecore.domain.errors import UpstreamUnavailable


class DriverDirectory(Protocol):
    async def candidates(self) -> list[DriverCandidate]: ...


class SqlDriverDirectory:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def candidates(self) -> list[DriverCandidate]:
        query = (
            select(UserModel, DriverProfileModel)
            .join(DriverProfileModel, DriverProfileModel.user_id == UserModel.id)
            .where(
                UserModel.is_driver.is_(True),
                DriverProfileModel.approved.is_(True),
            )
            .order_by(UserModel.created_at, UserModel.id)
        )
        try:
            result = await self.session.execute(query)
        except OperationalError as exc:
            raise UpstreamUnavailable("Driver directory unavailable") from exc

        return [
            DriverCandidate(
                id=user.id,
                name=user.name,
                phone=user.phone,
                car=profile.car_model,
                plate=profile.plate_number,
            )
            for user, profile in result.all()
        ]

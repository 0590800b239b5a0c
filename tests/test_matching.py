"""Tests for the matching policy and the SQL driver directory."""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from ridecore.domain.entities import DriverCandidate
from ridecore.domain.errors import UpstreamUnavailable
from ridecore.domain.matching import FirstAvailableDriver
from ridecore.infrastructure.directory import SqlDriverDirectory
from tests.conftest import add_driver, add_rider


class TestFirstAvailableDriver:
    def test_empty_snapshot(self):
        assert FirstAvailableDriver().select([]) is None

    def test_picks_first(self):
        a, b = DriverCandidate(id=uuid.uuid4()), DriverCandidate(id=uuid.uuid4())
        assert FirstAvailableDriver().select([a, b]) is a


class TestSqlDriverDirectory:
    @pytest.mark.asyncio
    async def test_only_approved_drivers_in_registration_order(self, db_session):
        t0 = datetime(2026, 3, 1, tzinfo=timezone.utc)
        await add_rider(db_session)
        late = await add_driver(db_session, "Late", created_at=t0 + timedelta(hours=2))
        await add_driver(db_session, "Unapproved", approved=False, created_at=t0)
        early = await add_driver(
            db_session, "Early", car="Kia K5", plate="12 AB 456",
            created_at=t0 + timedelta(hours=1),
        )

        candidates = await SqlDriverDirectory(db_session).candidates()

        assert [c.id for c in candidates] == [early.id, late.id]
        assert (candidates[0].name, candidates[0].car, candidates[0].plate) == (
            "Early", "Kia K5", "12 AB 456",
        )

    @pytest.mark.asyncio
    async def test_store_outage(self):
        session = AsyncMock()
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(UpstreamUnavailable):
            await SqlDriverDirectory(session).candidates()

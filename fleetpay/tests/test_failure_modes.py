"""
Failure Injection Tests.

Validates that one driver's failure never leaks into another driver's
settlement and that failed operations leave nothing half-written.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from httpx import AsyncClient, ASGITransport
from sqlalchemy import select, func

from fleetpay.app.core.config import Settings
from fleetpay.app.core.exceptions import ResourceNotFoundError
from fleetpay.app.core.utils import period_window
from fleetpay.app.domain.settlement import calculator
from fleetpay.app.domain.settlement.balance_ledger import BalanceLedger
from fleetpay.app.domain.settlement.settlement_service import SettlementService
from fleetpay.app.main import app
from fleetpay.app.models.driver_balance import DriverBalance
from fleetpay.app.models.enums import DriverStatus, PlatformSource
from fleetpay.app.models.ride import Ride
from fleetpay.app.models.settlement import Settlement
from fleetpay.tests.factories import create_partner, create_driver, create_ride

WEEK_START, WEEK_END = period_window(date(2024, 1, 1), date(2024, 1, 7))


@pytest.fixture
async def crew(db_session):
    """Three active drivers and one inactive driver, each with one ride."""
    partner = await create_partner(db_session)
    drivers = []
    for first_name in ("Anna", "Piotr", "Ewa"):
        drivers.append(await create_driver(db_session, partner, first_name=first_name))
    inactive = await create_driver(db_session, partner, first_name="Olek", status=DriverStatus.INACTIVE)
    for driver in drivers + [inactive]:
        await create_ride(db_session, driver, source=PlatformSource.FREENOW, fare="100.00", commission="10.00",
                          completed_at=datetime(2024, 1, 4, 15, 0))
    await db_session.commit()
    return {"partner": partner, "drivers": drivers, "inactive": inactive}


@pytest.mark.asyncio
async def test_batch_isolates_failing_driver(db_session, session_factory, crew, mocker):
    """A calculation error for one driver is reported; the others settle."""
    failing = crew["drivers"][1]
    real_calculate = calculator.calculate_settlement

    async def flaky_calculate(db, driver_id, *args, **kwargs):
        if driver_id == failing.id:
            raise RuntimeError("ride feed unavailable")
        return await real_calculate(db, driver_id, *args, **kwargs)

    mocker.patch(
        "fleetpay.app.domain.settlement.settlement_service.calculate_settlement",
        side_effect=flaky_calculate,
    )

    batch = await SettlementService.calculate_batch(
        session_factory, crew["partner"].id, WEEK_START, WEEK_END, max_concurrency=1
    )

    assert sorted(r["driver_id"] for r in batch.results) == sorted(
        d.id for d in crew["drivers"] if d.id != failing.id
    )
    assert batch.errors == [
        {"driver_id": failing.id, "name": "Piotr Kowalski", "error": "ride feed unavailable"}
    ]
    settled_drivers = (await db_session.execute(select(Settlement.driver_id))).scalars().all()
    assert failing.id not in settled_drivers
    assert crew["inactive"].id not in settled_drivers


@pytest.mark.asyncio
async def test_failure_after_upsert_rolls_back_everything(db_session, session_factory, crew, mocker):
    """A ledger failure undoes the settlement row and ride tags of that driver."""
    failing = crew["drivers"][0]
    real_upsert = BalanceLedger.upsert_settlement_entry

    async def broken_upsert(db, settlement):
        if settlement.driver_id == failing.id:
            raise RuntimeError("disk full")
        return await real_upsert(db, settlement)

    mocker.patch.object(BalanceLedger, "upsert_settlement_entry", side_effect=broken_upsert)

    batch = await SettlementService.calculate_batch(
        session_factory, crew["partner"].id, WEEK_START, WEEK_END, max_concurrency=1
    )

    assert len(batch.results) == 2
    assert [e["driver_id"] for e in batch.errors] == [failing.id]

    settlements = (await db_session.execute(
        select(func.count(Settlement.id)).where(Settlement.driver_id == failing.id)
    )).scalar_one()
    tagged = (await db_session.execute(
        select(func.count(Ride.id)).where(Ride.driver_id == failing.id, Ride.settlement_id.is_not(None))
    )).scalar_one()
    entries = (await db_session.execute(
        select(func.count(DriverBalance.id)).where(DriverBalance.driver_id == failing.id)
    )).scalar_one()
    assert (settlements, tagged, entries) == (0, 0, 0)


@pytest.mark.asyncio
async def test_batch_for_partner_without_drivers(db_session, session_factory):
    partner = await create_partner(db_session, name="Empty Fleet")
    await db_session.commit()

    batch = await SettlementService.calculate_batch(session_factory, partner.id, WEEK_START, WEEK_END)

    assert batch.results == []
    assert batch.errors == []


@pytest.mark.asyncio
async def test_unknown_driver_settlement_writes_nothing(db_session, crew):
    with pytest.raises(ResourceNotFoundError):
        await SettlementService.create_or_update_settlement(
            db_session, 9999, crew["partner"].id, WEEK_START, WEEK_END
        )

    settlements = (await db_session.execute(select(func.count(Settlement.id)))).scalar_one()
    entries = (await db_session.execute(select(func.count(DriverBalance.id)))).scalar_one()
    assert settlements == 0
    assert entries == 0


@pytest.mark.asyncio
async def test_unhandled_error_returns_generic_500(crew, mocker):
    """The cause is logged; the caller sees a generic message."""
    mocker.patch.object(SettlementService, "list_settlements", side_effect=RuntimeError("db exploded"))

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get(f"/v1/partners/{crew['partner'].id}/settlements")

    assert response.status_code == 500
    body = response.json()
    assert body["error_code"] == "ERR_INTERNAL_SERVER"
    assert "exploded" not in body["message"]
    assert "Traceback" not in response.text


def test_debug_is_off_unless_configured(monkeypatch):
    """Debug mode would answer unhandled errors with a traceback page."""
    monkeypatch.delenv("DEBUG", raising=False)
    assert Settings(_env_file=None).debug is False

    monkeypatch.setenv("DEBUG", "true")
    assert Settings(_env_file=None).debug is True

"""
Demo seed script test.
"""

import pytest
from datetime import date
from decimal import Decimal

from sqlalchemy import select

from fleetpay.app.core.utils import period_window
from fleetpay.app.domain.settlement.settlement_service import SettlementService
from fleetpay.app.models.partner import Partner
from fleetpay.seed_demo_data import DEMO_PARTNER_NAME, seed_demo_data


@pytest.mark.asyncio
async def test_seed_is_settleable_and_runs_once(session_factory):
    assert await seed_demo_data(session_factory) is True
    assert await seed_demo_data(session_factory) is False

    async with session_factory() as db:
        partner_id = (await db.execute(
            select(Partner.id).where(Partner.name == DEMO_PARTNER_NAME)
        )).scalar_one()

    start, end = period_window(date(2024, 1, 1), date(2024, 1, 7))
    batch = await SettlementService.calculate_batch(session_factory, partner_id, start, end, max_concurrency=1)

    assert batch.errors == []
    assert len(batch.results) == 2

    async with session_factory() as db:
        settlement = await SettlementService.get_settlement(db, batch.results[0]["settlement_id"])
    # Bolt 36.00 + Uber 45.50 + FreeNow 31.05
    assert settlement.total_platform_net == Decimal("112.55")
    assert settlement.cash_collected_by_driver == Decimal("30.80")
    assert settlement.total_rides == 5

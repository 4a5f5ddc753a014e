"""
Report Service.

Read-only aggregation of stored settlements for partner reports.
"""

from datetime import date
from typing import Dict

from sqlalchemy import select, asc
from sqlalchemy.ext.asyncio import AsyncSession

from fleetpay.app.core.utils import period_window
from fleetpay.app.domain.settlement.money import quantize_money, sum_money, to_money
from fleetpay.app.models.driver import Driver
from fleetpay.app.models.settlement import Settlement
from fleetpay.app.schemas.report import FleetSummaryFigures, FleetSummaryResponse, FleetSummaryRow

# report figure -> settlement column
FIGURE_COLUMNS: Dict[str, str] = {
    "total_platform_net": "total_platform_net",
    "partner_commission": "partner_commission_amount",
    "vehicle_rental": "vehicle_rental_deduction",
    "insurance": "insurance_deduction",
    "line_items_total": "line_items_total",
    "driver_net_earnings": "driver_net_earnings",
    "cash_collected": "cash_collected_by_driver",
    "payout_amount": "payout_amount",
}


class ReportService:

    @staticmethod
    async def get_fleet_summary(
        db: AsyncSession, partner_id: int, period_start: date, period_end: date
    ) -> FleetSummaryResponse:
        """
        Every settlement of the partner lying fully inside the window, one
        row each (driver last name, then period), plus exact column totals.
        """
        window_start, window_end = period_window(period_start, period_end)

        result = await db.execute(
            select(Settlement, Driver)
            .join(Driver, Driver.id == Settlement.driver_id)
            .where(
                Settlement.partner_id == partner_id,
                Settlement.period_start >= window_start,
                Settlement.period_end <= window_end,
            )
            .order_by(asc(Driver.last_name), asc(Driver.first_name), asc(Settlement.period_start), asc(Settlement.id))
        )

        rows = []
        for settlement, driver in result.all():
            figures = {
                name: quantize_money(to_money(getattr(settlement, column)))
                for name, column in FIGURE_COLUMNS.items()
            }
            rows.append(FleetSummaryRow(
                settlement_id=settlement.id,
                driver_id=driver.id,
                driver_name=driver.full_name,
                period_start=settlement.period_start,
                period_end=settlement.period_end,
                status=settlement.status,
                **figures,
            ))

        totals = FleetSummaryFigures(**{
            name: quantize_money(sum_money(getattr(row, name) for row in rows))
            for name in FIGURE_COLUMNS
        })

        return FleetSummaryResponse(
            period_start=period_start,
            period_end=period_end,
            rows=rows,
            totals=totals,
            driver_count=len({row.driver_id for row in rows}),
        )

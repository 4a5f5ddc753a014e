"""
Report Schemas.
"""

from pydantic import BaseModel
from datetime import date, datetime
from decimal import Decimal
from typing import List
from fleetpay.app.models.billing_enums import SettlementStatus


class FleetSummaryFigures(BaseModel):
    """The money columns shared by a summary row and the totals."""
    total_platform_net: Decimal
    partner_commission: Decimal
    vehicle_rental: Decimal
    insurance: Decimal
    line_items_total: Decimal
    driver_net_earnings: Decimal
    cash_collected: Decimal
    payout_amount: Decimal


class FleetSummaryRow(FleetSummaryFigures):
    settlement_id: int
    driver_id: int
    driver_name: str
    period_start: datetime
    period_end: datetime
    status: SettlementStatus


class FleetSummaryResponse(BaseModel):
    period_start: date
    period_end: date
    rows: List[FleetSummaryRow]
    totals: FleetSummaryFigures
    driver_count: int

"""
Settlement Calculator (Domain Logic).

Composes aggregation, commission, proration and cash reconciliation into
one immutable result for a driver and period. Read-only: nothing here
writes to the database.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from fleetpay.app.domain.settlement import data_access
from fleetpay.app.domain.settlement.aggregator import (
    PlatformBreakdown,
    RideRecord,
    aggregate_by_platform,
    cash_collected,
    select_rides_in_period,
    total_platform_net,
)
from fleetpay.app.domain.settlement.commission import (
    CommissionInput,
    calculate_partner_commission,
    missing_commission_fields,
    prorate_monthly_to_period,
    standard_period_days,
)
from fleetpay.app.domain.settlement.data_access import DriverCommissionConfig, VehicleCostConfig
from fleetpay.app.domain.settlement.money import ZERO, quantize_money
from fleetpay.app.models.enums import PlatformSource, RideStatus

logger = logging.getLogger("fleetpay.settlement")

SECONDS_PER_DAY = Decimal(86400)


@dataclass(frozen=True)
class SettlementResult:
    """Outcome of one settlement calculation, not yet persisted."""

    bolt: Optional[PlatformBreakdown]
    uber: Optional[PlatformBreakdown]
    freenow: Optional[PlatformBreakdown]
    total_platform_net: Decimal
    partner_commission_amount: Decimal
    vehicle_rental_deduction: Decimal
    insurance_deduction: Decimal
    fuel_cost_deduction: Decimal
    cash_collected_by_driver: Decimal
    driver_net_earnings: Decimal
    payout_amount: Decimal
    total_rides: int
    completed_rides: int
    period_days: int
    ride_ids: tuple = ()

    def breakdown(self, source: PlatformSource) -> Optional[PlatformBreakdown]:
        return {
            PlatformSource.BOLT: self.bolt,
            PlatformSource.UBER: self.uber,
            PlatformSource.FREENOW: self.freenow,
        }[source]

    def settlement_columns(self) -> Dict[str, object]:
        """Flat column values for the `settlements` table."""
        columns = {}
        for source in PlatformSource:
            breakdown = self.breakdown(source)
            prefix = source.value.lower()
            fields = ["gross_revenue", "commission", "tips", "bonuses", "net_amount"]
            if source == PlatformSource.BOLT:
                fields.append("cash_service_fee")
            values = breakdown.as_columns() if breakdown else {}
            for field in fields:
                columns[f"{prefix}_{field}"] = values.get(field)
        columns.update(
            total_platform_net=self.total_platform_net,
            partner_commission_amount=self.partner_commission_amount,
            vehicle_rental_deduction=self.vehicle_rental_deduction,
            insurance_deduction=self.insurance_deduction,
            fuel_cost_deduction=self.fuel_cost_deduction,
            cash_collected_by_driver=self.cash_collected_by_driver,
            driver_net_earnings=self.driver_net_earnings,
            payout_amount=self.payout_amount,
            total_rides=self.total_rides,
            completed_rides=self.completed_rides,
        )
        return columns


def period_length_days(period_start: datetime, period_end: datetime) -> int:
    """Whole days between start and end, rounded half-up, at least 1."""
    seconds = Decimal(str((period_end - period_start).total_seconds()))
    days = int((seconds / SECONDS_PER_DAY).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return max(1, days)


def build_settlement_result(
    rides: List[RideRecord],
    config: DriverCommissionConfig,
    vehicle: Optional[VehicleCostConfig],
    period_start: datetime,
    period_end: datetime,
) -> SettlementResult:
    """
    Derive a settlement from already-fetched rides and configuration.

    Rides outside the period are ignored, so callers may pass a superset.
    """
    rides = select_rides_in_period(rides, period_start, period_end)

    breakdowns = aggregate_by_platform(rides)
    platform_net = total_platform_net(breakdowns)

    period_days = period_length_days(period_start, period_end)
    completed_rides = sum(1 for r in rides if r.status == RideStatus.COMPLETED)

    commission_input = CommissionInput(
        model=config.commission_model,
        total_platform_net=platform_net,
        commission_rate=config.commission_rate,
        fixed_fee=config.fixed_fee,
        hybrid_threshold=config.hybrid_threshold,
        per_ride_fee=config.per_ride_fee,
        completed_ride_count=completed_rides,
        period_days=period_days,
        standard_period_days=standard_period_days(config.settlement_frequency),
    )
    missing = missing_commission_fields(commission_input)
    if missing:
        logger.warning(
            "Driver %s uses %s commission without %s; treating as 0",
            config.driver_id, config.commission_model.value, ", ".join(missing),
        )
    partner_commission = calculate_partner_commission(commission_input)

    if vehicle is not None:
        vehicle_rental = prorate_monthly_to_period(vehicle.monthly_rental_cost, period_days)
        insurance = prorate_monthly_to_period(vehicle.insurance_monthly_cost, period_days)
    else:
        vehicle_rental = quantize_money(ZERO)
        insurance = quantize_money(ZERO)

    fuel_cost = quantize_money(ZERO)  # manual entry only
    cash = cash_collected(rides)

    driver_net = quantize_money(
        platform_net - partner_commission - vehicle_rental - insurance - fuel_cost
    )
    payout = quantize_money(driver_net - cash)

    return SettlementResult(
        bolt=breakdowns[PlatformSource.BOLT],
        uber=breakdowns[PlatformSource.UBER],
        freenow=breakdowns[PlatformSource.FREENOW],
        total_platform_net=platform_net,
        partner_commission_amount=partner_commission,
        vehicle_rental_deduction=vehicle_rental,
        insurance_deduction=insurance,
        fuel_cost_deduction=fuel_cost,
        cash_collected_by_driver=cash,
        driver_net_earnings=driver_net,
        payout_amount=payout,
        total_rides=len(rides),
        completed_rides=completed_rides,
        period_days=period_days,
        ride_ids=tuple(r.id for r in rides),
    )


async def calculate_settlement(
    db: AsyncSession,
    driver_id: int,
    partner_id: int,
    period_start: datetime,
    period_end: datetime,
) -> SettlementResult:
    """
    Calculate (without persisting) a driver's settlement for a period.

    Raises:
        ResourceNotFoundError: driver does not exist for this partner
    """
    config = await data_access.get_driver_commission_config(db, driver_id, partner_id)
    vehicle = await data_access.get_assigned_vehicle_cost_config(db, driver_id)
    rides = await data_access.fetch_rides(db, driver_id, period_start, period_end)

    return build_settlement_result(rides, config, vehicle, period_start, period_end)

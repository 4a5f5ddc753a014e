"""
Read access to the ride and driver/vehicle stores.

The settlement engine only ever reads these tables (apart from tagging
rides with their settlement id, done by the settlement service).
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from fleetpay.app.core.exceptions import ResourceNotFoundError
from fleetpay.app.domain.settlement.aggregator import RideRecord
from fleetpay.app.domain.settlement.money import optional_money
from fleetpay.app.models.driver import Driver
from fleetpay.app.models.enums import CommissionModel, SettlementFrequency
from fleetpay.app.models.ride import Ride
from fleetpay.app.models.vehicle import Vehicle


@dataclass(frozen=True)
class DriverCommissionConfig:
    driver_id: int
    partner_id: int
    full_name: str
    commission_model: CommissionModel
    commission_rate: Optional[Decimal]
    fixed_fee: Optional[Decimal]
    hybrid_threshold: Optional[Decimal]
    per_ride_fee: Optional[Decimal]
    settlement_frequency: SettlementFrequency


@dataclass(frozen=True)
class VehicleCostConfig:
    vehicle_id: int
    monthly_rental_cost: Optional[Decimal]
    insurance_monthly_cost: Optional[Decimal]


def rides_in_period_clause(driver_id: int, period_start: datetime, period_end: datetime):
    """SQL form of the ride period-selection rule."""
    return and_(
        Ride.driver_id == driver_id,
        or_(
            Ride.completed_at.between(period_start, period_end),
            and_(
                Ride.completed_at.is_(None),
                Ride.started_at.between(period_start, period_end),
            ),
        ),
    )


async def get_driver(db: AsyncSession, driver_id: int, partner_id: Optional[int] = None) -> Driver:
    """
    Load a driver, optionally scoped to a partner.

    Raises:
        ResourceNotFoundError: unknown driver, or driver of another partner
    """
    driver = await db.get(Driver, driver_id)
    if driver is None or (partner_id is not None and driver.partner_id != partner_id):
        raise ResourceNotFoundError("Driver", driver_id)
    return driver


async def get_driver_commission_config(db: AsyncSession, driver_id: int, partner_id: Optional[int] = None) -> DriverCommissionConfig:
    driver = await get_driver(db, driver_id, partner_id)
    return DriverCommissionConfig(
        driver_id=driver.id,
        partner_id=driver.partner_id,
        full_name=driver.full_name,
        commission_model=driver.commission_model,
        commission_rate=optional_money(driver.commission_rate),
        fixed_fee=optional_money(driver.fixed_fee),
        hybrid_threshold=optional_money(driver.hybrid_threshold),
        per_ride_fee=optional_money(driver.per_ride_fee),
        settlement_frequency=driver.settlement_frequency,
    )


async def get_assigned_vehicle_cost_config(db: AsyncSession, driver_id: int) -> Optional[VehicleCostConfig]:
    """Cost config of the driver's assigned vehicle, None when unassigned."""
    result = await db.execute(
        select(Vehicle).join(Driver, Driver.vehicle_id == Vehicle.id).where(Driver.id == driver_id)
    )
    vehicle = result.scalar_one_or_none()
    if vehicle is None:
        return None
    return VehicleCostConfig(
        vehicle_id=vehicle.id,
        monthly_rental_cost=optional_money(vehicle.monthly_rental_cost),
        insurance_monthly_cost=optional_money(vehicle.insurance_monthly_cost),
    )


async def fetch_rides(db: AsyncSession, driver_id: int, period_start: datetime, period_end: datetime) -> List[RideRecord]:
    """Rides of a driver selected into [period_start, period_end]."""
    result = await db.execute(
        select(Ride)
        .where(rides_in_period_clause(driver_id, period_start, period_end))
        .order_by(Ride.id)
    )
    return [RideRecord.from_model(ride) for ride in result.scalars().all()]

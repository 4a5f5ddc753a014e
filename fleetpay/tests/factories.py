"""
Test data builders.

Each builder adds a row and flushes so the id is available; callers commit.
"""

from datetime import datetime
from decimal import Decimal

from fleetpay.app.models.partner import Partner
from fleetpay.app.models.vehicle import Vehicle
from fleetpay.app.models.driver import Driver
from fleetpay.app.models.ride import Ride
from fleetpay.app.models.enums import (
    CommissionModel, DriverStatus, PaymentMethod, PlatformSource, RideStatus, SettlementFrequency
)

async def create_partner(db, name="Kraków Fleet"):
    partner = Partner(name=name)
    db.add(partner)
    await db.flush()
    return partner


async def create_vehicle(db, partner, plate="KR 12345", rental="1200.00", insurance="300.00"):
    vehicle = Vehicle(
        partner_id=partner.id,
        license_plate=plate,
        make="Toyota",
        model="Corolla",
        monthly_rental_cost=Decimal(rental) if rental is not None else None,
        insurance_monthly_cost=Decimal(insurance) if insurance is not None else None,
    )
    db.add(vehicle)
    await db.flush()
    return vehicle


async def create_driver(
    db,
    partner,
    vehicle=None,
    first_name="Jan",
    last_name="Kowalski",
    commission_model=CommissionModel.PERCENTAGE,
    commission_rate="25.00",
    fixed_fee=None,
    hybrid_threshold=None,
    per_ride_fee=None,
    settlement_frequency=SettlementFrequency.WEEKLY,
    status=DriverStatus.ACTIVE,
):
    def money(value):
        return Decimal(value) if value is not None else None

    driver = Driver(
        partner_id=partner.id,
        vehicle_id=vehicle.id if vehicle else None,
        first_name=first_name,
        last_name=last_name,
        status=status,
        commission_model=commission_model,
        commission_rate=money(commission_rate),
        fixed_fee=money(fixed_fee),
        hybrid_threshold=money(hybrid_threshold),
        per_ride_fee=money(per_ride_fee),
        settlement_frequency=settlement_frequency,
    )
    db.add(driver)
    await db.flush()
    return driver


async def create_ride(
    db,
    driver,
    source=PlatformSource.BOLT,
    fare="20.00",
    tip="0.00",
    commission="5.00",
    payment_method=PaymentMethod.CARD,
    status=RideStatus.COMPLETED,
    started_at=datetime(2024, 1, 2, 10, 0),
    completed_at=datetime(2024, 1, 2, 10, 30),
):
    ride = Ride(
        driver_id=driver.id,
        source=source,
        fare_amount=Decimal(fare),
        tip_amount=Decimal(tip),
        platform_commission_amount=Decimal(commission),
        payment_method=payment_method,
        status=status,
        started_at=started_at,
        completed_at=completed_at,
    )
    db.add(ride)
    await db.flush()
    return ride



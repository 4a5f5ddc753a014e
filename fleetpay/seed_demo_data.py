"""
Database seeding script for a demo fleet.

Creates one partner with a vehicle, two drivers on different commission
models and a week of rides across Bolt, Uber and FreeNow.
Run this script after the database is set up.
"""

import asyncio
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from fleetpay.app.db.session import AsyncSessionLocal
from fleetpay.app.models.partner import Partner
from fleetpay.app.models.vehicle import Vehicle
from fleetpay.app.models.driver import Driver
from fleetpay.app.models.ride import Ride
from fleetpay.app.models.enums import (
    CommissionModel, PaymentMethod, PlatformSource, RideStatus, SettlementFrequency
)

DEMO_PARTNER_NAME = "Demo Fleet"
DEMO_WEEK_START = datetime(2024, 1, 1)

# (source, fare, tip, platform commission, payment method)
DEMO_RIDES = [
    (PlatformSource.BOLT, "24.50", "2.00", "4.90", PaymentMethod.IN_APP),
    (PlatformSource.BOLT, "18.00", "0.00", "3.60", PaymentMethod.CASH),
    (PlatformSource.UBER, "41.20", "5.00", "10.30", PaymentMethod.CARD),
    (PlatformSource.UBER, "12.80", "0.00", "3.20", PaymentMethod.CASH),
    (PlatformSource.FREENOW, "33.00", "3.00", "4.95", PaymentMethod.CARD),
]


async def seed_demo_data(session_factory: async_sessionmaker = AsyncSessionLocal) -> bool:
    """
    Seed the demo fleet.

    Returns:
        False when the demo partner already exists, True otherwise
    """
    async with session_factory() as db:
        print("🌱 Starting demo fleet seeding...")

        result = await db.execute(select(Partner).where(Partner.name == DEMO_PARTNER_NAME))
        if result.scalar_one_or_none():
            print("ℹ️  Demo partner already exists, skipping seeding")
            return False

        partner = Partner(name=DEMO_PARTNER_NAME)
        db.add(partner)
        await db.flush()

        vehicle = Vehicle(
            partner_id=partner.id,
            license_plate="DEMO 001",
            make="Toyota",
            model="Corolla Hybrid",
            monthly_rental_cost=Decimal("1200.00"),
            insurance_monthly_cost=Decimal("300.00"),
        )
        db.add(vehicle)
        await db.flush()

        percentage_driver = Driver(
            partner_id=partner.id,
            vehicle_id=vehicle.id,
            first_name="Anna",
            last_name="Nowak",
            commission_model=CommissionModel.PERCENTAGE,
            commission_rate=Decimal("20.00"),
            settlement_frequency=SettlementFrequency.WEEKLY,
        )
        hybrid_driver = Driver(
            partner_id=partner.id,
            first_name="Marek",
            last_name="Wiśniewski",
            commission_model=CommissionModel.HYBRID,
            commission_rate=Decimal("10.00"),
            fixed_fee=Decimal("50.00"),
            hybrid_threshold=Decimal("100.00"),
            settlement_frequency=SettlementFrequency.WEEKLY,
        )
        db.add_all([percentage_driver, hybrid_driver])
        await db.flush()

        for driver in (percentage_driver, hybrid_driver):
            for day, (source, fare, tip, commission, method) in enumerate(DEMO_RIDES):
                started_at = DEMO_WEEK_START + timedelta(days=day, hours=8 + day)
                db.add(Ride(
                    driver_id=driver.id,
                    source=source,
                    external_ride_id=f"{source.value.lower()}-{driver.id}-{day}",
                    fare_amount=Decimal(fare),
                    tip_amount=Decimal(tip),
                    platform_commission_amount=Decimal(commission),
                    payment_method=method,
                    status=RideStatus.COMPLETED,
                    started_at=started_at,
                    completed_at=started_at + timedelta(minutes=25),
                ))

        await db.commit()

        print(f"✅ Created partner {partner.id} with drivers {percentage_driver.id} and {hybrid_driver.id}")
        print(f"🎉 Demo fleet seeded; settle the week starting {DEMO_WEEK_START.date()}")
        return True


if __name__ == "__main__":
    asyncio.run(seed_demo_data())

"""
Platform aggregation and ride period-selection tests.
"""

from datetime import datetime
from decimal import Decimal

from fleetpay.app.domain.settlement.aggregator import (
    RideRecord,
    aggregate_by_platform,
    aggregate_platform,
    cash_collected,
    ride_in_period,
    select_rides_in_period,
    total_platform_net,
)
from fleetpay.app.models.enums import PaymentMethod, PlatformSource, RideStatus

PERIOD_START = datetime(2024, 1, 1, 0, 0)
PERIOD_END = datetime(2024, 1, 7, 23, 59, 59)

_next_id = iter(range(1, 10_000))


def ride(
    source=PlatformSource.BOLT,
    fare="10.00",
    tip="0.00",
    commission="2.00",
    payment_method=PaymentMethod.CARD,
    status=RideStatus.COMPLETED,
    started_at=datetime(2024, 1, 3, 12, 0),
    completed_at=datetime(2024, 1, 3, 12, 20),
):
    return RideRecord(
        id=next(_next_id),
        driver_id=1,
        source=source,
        fare_amount=Decimal(fare),
        tip_amount=Decimal(tip),
        platform_commission_amount=Decimal(commission),
        payment_method=payment_method,
        started_at=started_at,
        completed_at=completed_at,
        status=status,
    )


def test_mixed_platforms_match_hand_computed_sums():
    rides = [
        ride(PlatformSource.BOLT, fare="25.00", tip="2.00", commission="5.00"),
        ride(PlatformSource.BOLT, fare="15.50", tip="0.00", commission="3.10"),
        ride(PlatformSource.UBER, fare="40.00", tip="5.00", commission="10.00"),
        ride(PlatformSource.FREENOW, fare="12.30", tip="1.20", commission="2.46"),
    ]

    breakdowns = aggregate_by_platform(rides)

    bolt = breakdowns[PlatformSource.BOLT]
    assert bolt.gross_revenue == Decimal("40.50")
    assert bolt.commission == Decimal("8.10")
    assert bolt.tips == Decimal("2.00")
    assert bolt.bonuses == Decimal("0.00")
    assert bolt.cash_service_fee == Decimal("0.00")
    assert bolt.net_amount == Decimal("34.40")
    assert bolt.ride_count == 2

    uber = breakdowns[PlatformSource.UBER]
    assert uber.net_amount == Decimal("35.00")
    assert uber.cash_service_fee is None

    freenow = breakdowns[PlatformSource.FREENOW]
    assert freenow.net_amount == Decimal("11.04")

    assert total_platform_net(breakdowns) == Decimal("80.44")


def test_platform_without_rides_is_none():
    breakdowns = aggregate_by_platform([ride(PlatformSource.UBER)])

    assert breakdowns[PlatformSource.BOLT] is None
    assert breakdowns[PlatformSource.FREENOW] is None
    assert breakdowns[PlatformSource.UBER] is not None
    assert aggregate_platform([], PlatformSource.BOLT) is None


def test_total_platform_net_of_no_activity_is_zero():
    assert total_platform_net(aggregate_by_platform([])) == Decimal("0.00")


def test_bolt_columns_include_cash_service_fee():
    bolt = aggregate_platform([ride(PlatformSource.BOLT)], PlatformSource.BOLT)
    uber = aggregate_platform([ride(PlatformSource.UBER)], PlatformSource.UBER)

    assert "cash_service_fee" in bolt.as_columns()
    assert "cash_service_fee" not in uber.as_columns()


def test_ride_selected_by_completion_time():
    inside = ride(started_at=datetime(2023, 12, 31, 23, 40), completed_at=datetime(2024, 1, 1, 0, 10))
    assert ride_in_period(inside, PERIOD_START, PERIOD_END)


def test_uncompleted_ride_selected_by_start_time():
    no_show = ride(
        status=RideStatus.NO_SHOW,
        started_at=datetime(2024, 1, 5, 9, 0),
        completed_at=None,
    )
    assert ride_in_period(no_show, PERIOD_START, PERIOD_END)


def test_completed_outside_window_excluded_even_if_started_inside():
    late = ride(started_at=datetime(2024, 1, 7, 23, 50), completed_at=datetime(2024, 1, 8, 0, 15))
    assert not ride_in_period(late, PERIOD_START, PERIOD_END)


def test_window_bounds_are_inclusive():
    at_start = ride(completed_at=PERIOD_START)
    at_end = ride(completed_at=PERIOD_END)
    assert select_rides_in_period([at_start, at_end], PERIOD_START, PERIOD_END) == [at_start, at_end]


def test_cash_collected_counts_only_cash_fares():
    rides = [
        ride(fare="30.00", tip="4.00", payment_method=PaymentMethod.CASH),
        ride(fare="20.00", tip="1.00", payment_method=PaymentMethod.CASH),
        ride(fare="50.00", payment_method=PaymentMethod.CARD),
        ride(fare="15.00", payment_method=PaymentMethod.IN_APP),
    ]
    assert cash_collected(rides) == Decimal("50.00")

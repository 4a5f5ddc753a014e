"""
Platform aggregation.

Buckets a driver's rides by platform and sums them into per-platform
breakdowns. Pure functions over `RideRecord` value objects.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from fleetpay.app.domain.settlement.money import ZERO, quantize_money, to_money
from fleetpay.app.models.enums import PaymentMethod, PlatformSource, RideStatus


@dataclass(frozen=True)
class RideRecord:
    """Immutable view of one ride as the engine sees it."""

    id: int
    driver_id: int
    source: PlatformSource
    fare_amount: Decimal
    tip_amount: Decimal
    platform_commission_amount: Decimal
    payment_method: PaymentMethod
    started_at: datetime
    completed_at: Optional[datetime]
    status: RideStatus

    @classmethod
    def from_model(cls, ride) -> "RideRecord":
        return cls(
            id=ride.id,
            driver_id=ride.driver_id,
            source=PlatformSource(ride.source),
            fare_amount=to_money(ride.fare_amount),
            tip_amount=to_money(ride.tip_amount),
            platform_commission_amount=to_money(ride.platform_commission_amount),
            payment_method=PaymentMethod(ride.payment_method or PaymentMethod.UNKNOWN),
            started_at=ride.started_at,
            completed_at=ride.completed_at,
            status=RideStatus(ride.status),
        )


@dataclass(frozen=True)
class PlatformBreakdown:
    """Per-platform totals over one period. Recomputed, never mutated."""

    gross_revenue: Decimal
    commission: Decimal
    tips: Decimal
    bonuses: Decimal
    net_amount: Decimal
    ride_count: int
    cash_service_fee: Optional[Decimal] = None  # Bolt only

    def as_columns(self) -> Dict[str, Decimal]:
        columns = {
            "gross_revenue": self.gross_revenue,
            "commission": self.commission,
            "tips": self.tips,
            "bonuses": self.bonuses,
            "net_amount": self.net_amount,
        }
        if self.cash_service_fee is not None:
            columns["cash_service_fee"] = self.cash_service_fee
        return columns


def ride_in_period(ride: RideRecord, period_start: datetime, period_end: datetime) -> bool:
    """
    A ride belongs to [period_start, period_end] by its completion time, or
    by its start time when it never completed.
    """
    if ride.completed_at is not None:
        return period_start <= ride.completed_at <= period_end
    return period_start <= ride.started_at <= period_end


def select_rides_in_period(
    rides: Iterable[RideRecord], period_start: datetime, period_end: datetime
) -> List[RideRecord]:
    return [r for r in rides if ride_in_period(r, period_start, period_end)]


def aggregate_platform(rides: List[RideRecord], source: PlatformSource) -> Optional[PlatformBreakdown]:
    """
    Sum one platform's rides. Returns None when the platform had no rides,
    so zero-activity platforms are omitted rather than recorded as zeros.
    """
    platform_rides = [r for r in rides if r.source == source]
    if not platform_rides:
        return None

    gross_revenue = ZERO
    commission = ZERO
    tips = ZERO
    bonuses = ZERO  # no ride field maps to platform bonuses yet
    cash_service_fee = ZERO  # Bolt reports it inside its commission today

    for ride in platform_rides:
        gross_revenue += ride.fare_amount
        tips += ride.tip_amount
        commission += ride.platform_commission_amount

    net_amount = gross_revenue - commission + tips + bonuses - cash_service_fee

    return PlatformBreakdown(
        gross_revenue=quantize_money(gross_revenue),
        commission=quantize_money(commission),
        tips=quantize_money(tips),
        bonuses=quantize_money(bonuses),
        net_amount=quantize_money(net_amount),
        ride_count=len(platform_rides),
        cash_service_fee=quantize_money(cash_service_fee) if source == PlatformSource.BOLT else None,
    )


def aggregate_by_platform(rides: List[RideRecord]) -> Dict[PlatformSource, Optional[PlatformBreakdown]]:
    """Breakdown for every platform, None where there was no activity."""
    return {source: aggregate_platform(rides, source) for source in PlatformSource}


def total_platform_net(breakdowns: Dict[PlatformSource, Optional[PlatformBreakdown]]) -> Decimal:
    return quantize_money(sum(
        (b.net_amount for b in breakdowns.values() if b is not None), ZERO
    ))


def cash_collected(rides: Iterable[RideRecord]) -> Decimal:
    """Fares of cash rides. Tips are not counted as physically collected."""
    return quantize_money(sum(
        (r.fare_amount for r in rides if r.payment_method == PaymentMethod.CASH), ZERO
    ))

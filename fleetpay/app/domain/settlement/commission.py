"""
Commission model evaluation and cost proration.

Pure functions: no I/O, no clock, Decimal in and Decimal out.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from fleetpay.app.domain.settlement.money import ZERO, quantize_money
from fleetpay.app.models.enums import CommissionModel, SettlementFrequency

# 365.25 / 12. Settlement periods are rolling windows, not calendar months.
AVERAGE_MONTH_DAYS = Decimal("30.44")

STANDARD_PERIOD_DAYS = {
    SettlementFrequency.WEEKLY: 7,
    SettlementFrequency.BIWEEKLY: 14,
    SettlementFrequency.MONTHLY: 30,
}


@dataclass(frozen=True)
class CommissionInput:
    """Everything a commission model may need for one period."""

    model: Optional[CommissionModel]
    total_platform_net: Decimal
    commission_rate: Optional[Decimal] = None
    fixed_fee: Optional[Decimal] = None
    hybrid_threshold: Optional[Decimal] = None
    per_ride_fee: Optional[Decimal] = None
    completed_ride_count: int = 0
    period_days: int = 7
    standard_period_days: int = 7


def standard_period_days(frequency: Optional[SettlementFrequency]) -> int:
    """Days in the driver's standard settlement period (monthly when unknown)."""
    return STANDARD_PERIOD_DAYS.get(frequency, 30)


def _prorate_fixed_fee(fee: Decimal, period_days: int, standard_days: int) -> Decimal:
    # Short periods are scaled down; long periods are never scaled up.
    if period_days < standard_days:
        return fee * period_days / standard_days
    return fee


def calculate_partner_commission(params: CommissionInput) -> Decimal:
    """
    Calculate the partner's commission for one driver and period.

    PERCENTAGE: total_platform_net * rate / 100
    FIXED: fixed_fee, prorated down when the period is shorter than standard
    HYBRID: prorated fixed_fee + max(0, total_platform_net - threshold) * rate / 100
    PER_RIDE: per_ride_fee * completed_ride_count

    Missing configuration values count as zero; an unknown model yields zero.
    """
    rate = params.commission_rate if params.commission_rate is not None else ZERO
    fee = params.fixed_fee if params.fixed_fee is not None else ZERO

    if params.model == CommissionModel.PERCENTAGE:
        return quantize_money(params.total_platform_net * rate / 100)

    if params.model == CommissionModel.FIXED:
        return quantize_money(
            _prorate_fixed_fee(fee, params.period_days, params.standard_period_days)
        )

    if params.model == CommissionModel.HYBRID:
        threshold = params.hybrid_threshold if params.hybrid_threshold is not None else ZERO
        prorated_fee = _prorate_fixed_fee(fee, params.period_days, params.standard_period_days)
        over_threshold = max(ZERO, params.total_platform_net - threshold)
        return quantize_money(prorated_fee + over_threshold * rate / 100)

    if params.model == CommissionModel.PER_RIDE:
        per_ride = params.per_ride_fee if params.per_ride_fee is not None else ZERO
        return quantize_money(per_ride * params.completed_ride_count)

    return quantize_money(ZERO)


def missing_commission_fields(params: CommissionInput) -> list[str]:
    """
    Configuration fields the model reads but that are not set.

    Not an error: the engine evaluates them as zero. Callers log the
    result as a data-quality signal.
    """
    required = {
        CommissionModel.PERCENTAGE: ["commission_rate"],
        CommissionModel.FIXED: ["fixed_fee"],
        CommissionModel.HYBRID: ["fixed_fee", "hybrid_threshold", "commission_rate"],
        CommissionModel.PER_RIDE: ["per_ride_fee"],
    }.get(params.model, [])
    return [name for name in required if getattr(params, name) is None]


def prorate_monthly_to_period(monthly_cost: Optional[Decimal], period_days: int) -> Decimal:
    """Prorate a monthly recurring cost onto a period of `period_days` days."""
    if not monthly_cost:
        return quantize_money(ZERO)
    return quantize_money(monthly_cost * period_days / AVERAGE_MONTH_DAYS)

"""
Commission model and cost proration tests.
"""

import pytest
from decimal import Decimal

from fleetpay.app.domain.settlement.commission import (
    CommissionInput,
    calculate_partner_commission,
    missing_commission_fields,
    prorate_monthly_to_period,
    standard_period_days,
)
from fleetpay.app.models.enums import CommissionModel, SettlementFrequency


def D(value):
    return Decimal(value)


def test_percentage_commission():
    params = CommissionInput(
        model=CommissionModel.PERCENTAGE, total_platform_net=D("1000.00"), commission_rate=D("25.00")
    )
    assert calculate_partner_commission(params) == D("250.00")


def test_percentage_rounds_half_up():
    # 10.05 * 15% = 1.5075
    params = CommissionInput(
        model=CommissionModel.PERCENTAGE, total_platform_net=D("10.05"), commission_rate=D("15.00")
    )
    assert calculate_partner_commission(params) == D("1.51")


def test_fixed_fee_prorated_for_short_period():
    params = CommissionInput(
        model=CommissionModel.FIXED,
        total_platform_net=D("500.00"),
        fixed_fee=D("100.00"),
        period_days=3,
        standard_period_days=7,
    )
    # 100 * 3 / 7 = 42.857...
    assert calculate_partner_commission(params) == D("42.86")


@pytest.mark.parametrize("period_days", [7, 14, 31])
def test_fixed_fee_not_prorated_at_or_above_standard_period(period_days):
    params = CommissionInput(
        model=CommissionModel.FIXED,
        total_platform_net=D("500.00"),
        fixed_fee=D("100.00"),
        period_days=period_days,
        standard_period_days=7,
    )
    assert calculate_partner_commission(params) == D("100.00")


def test_fixed_fee_independent_of_revenue():
    base = dict(model=CommissionModel.FIXED, fixed_fee=D("80.00"), period_days=7, standard_period_days=7)
    low = calculate_partner_commission(CommissionInput(total_platform_net=D("0.00"), **base))
    high = calculate_partner_commission(CommissionInput(total_platform_net=D("5000.00"), **base))
    assert low == high == D("80.00")


def test_hybrid_above_threshold():
    params = CommissionInput(
        model=CommissionModel.HYBRID,
        total_platform_net=D("800.00"),
        fixed_fee=D("50.00"),
        hybrid_threshold=D("500.00"),
        commission_rate=D("10.00"),
    )
    assert calculate_partner_commission(params) == D("80.00")


def test_hybrid_below_threshold_charges_only_fee():
    params = CommissionInput(
        model=CommissionModel.HYBRID,
        total_platform_net=D("400.00"),
        fixed_fee=D("50.00"),
        hybrid_threshold=D("500.00"),
        commission_rate=D("10.00"),
    )
    assert calculate_partner_commission(params) == D("50.00")


def test_hybrid_prorates_fee_but_not_percentage_part():
    params = CommissionInput(
        model=CommissionModel.HYBRID,
        total_platform_net=D("600.00"),
        fixed_fee=D("70.00"),
        hybrid_threshold=D("500.00"),
        commission_rate=D("10.00"),
        period_days=1,
        standard_period_days=7,
    )
    # 70 / 7 + 100 * 10%
    assert calculate_partner_commission(params) == D("20.00")


def test_per_ride_counts_completed_rides():
    params = CommissionInput(
        model=CommissionModel.PER_RIDE,
        total_platform_net=D("300.00"),
        per_ride_fee=D("2.50"),
        completed_ride_count=40,
    )
    assert calculate_partner_commission(params) == D("100.00")


def test_unknown_model_yields_zero():
    params = CommissionInput(model=None, total_platform_net=D("1000.00"), commission_rate=D("25.00"))
    assert calculate_partner_commission(params) == D("0.00")


def test_missing_rate_treated_as_zero():
    params = CommissionInput(model=CommissionModel.PERCENTAGE, total_platform_net=D("1000.00"))
    assert calculate_partner_commission(params) == D("0.00")
    assert missing_commission_fields(params) == ["commission_rate"]


def test_missing_fields_for_hybrid():
    params = CommissionInput(
        model=CommissionModel.HYBRID, total_platform_net=D("100.00"), fixed_fee=D("10.00")
    )
    assert missing_commission_fields(params) == ["hybrid_threshold", "commission_rate"]


def test_no_missing_fields_when_configured():
    params = CommissionInput(
        model=CommissionModel.PER_RIDE, total_platform_net=D("100.00"), per_ride_fee=D("1.00")
    )
    assert missing_commission_fields(params) == []


@pytest.mark.parametrize("frequency, days", [
    (SettlementFrequency.WEEKLY, 7),
    (SettlementFrequency.BIWEEKLY, 14),
    (SettlementFrequency.MONTHLY, 30),
    (None, 30),
])
def test_standard_period_days(frequency, days):
    assert standard_period_days(frequency) == days


def test_monthly_cost_prorated_by_average_month():
    # 1200 * 7 / 30.44 = 275.9526...
    assert prorate_monthly_to_period(D("1200.00"), 7) == D("275.95")
    # 300 * 7 / 30.44 = 68.9881...
    assert prorate_monthly_to_period(D("300.00"), 7) == D("68.99")


def test_prorating_missing_cost_is_zero():
    assert prorate_monthly_to_period(None, 7) == D("0.00")
    assert prorate_monthly_to_period(D("0"), 7) == D("0.00")


def test_thirty_day_period_costs_slightly_less_than_a_month():
    # 1000 * 30 / 30.44 = 985.545...
    assert prorate_monthly_to_period(D("1000.00"), 30) == D("985.55")

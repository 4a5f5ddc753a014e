"""
Settlement Schemas.

Money travels as Decimal and is serialized as a string, never a float.
"""

from pydantic import BaseModel, Field, model_validator
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from fleetpay.app.models.billing_enums import LineItemType, SettlementStatus


class SettlementPeriod(BaseModel):
    """Inclusive calendar-day period."""
    period_start: date
    period_end: date

    @model_validator(mode="after")
    def check_order(self):
        if self.period_end < self.period_start:
            raise ValueError("period_end must not be before period_start")
        return self


class SettlementCreate(SettlementPeriod):
    """Schema for calculating one driver's settlement."""
    driver_id: int


class PlatformBreakdownResponse(BaseModel):
    gross_revenue: Decimal
    commission: Decimal
    tips: Decimal
    bonuses: Decimal
    net_amount: Decimal
    ride_count: int
    cash_service_fee: Optional[Decimal] = None

    class Config:
        from_attributes = True


class SettlementPreviewResponse(BaseModel):
    """Calculated figures of a settlement that has not been persisted."""
    bolt: Optional[PlatformBreakdownResponse]
    uber: Optional[PlatformBreakdownResponse]
    freenow: Optional[PlatformBreakdownResponse]
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

    class Config:
        from_attributes = True


class SettlementResponse(BaseModel):
    """Schema for displaying settlements."""
    id: int
    driver_id: int
    partner_id: int
    period_start: datetime
    period_end: datetime

    bolt_gross_revenue: Optional[Decimal]
    bolt_commission: Optional[Decimal]
    bolt_tips: Optional[Decimal]
    bolt_bonuses: Optional[Decimal]
    bolt_cash_service_fee: Optional[Decimal]
    bolt_net_amount: Optional[Decimal]
    uber_gross_revenue: Optional[Decimal]
    uber_commission: Optional[Decimal]
    uber_tips: Optional[Decimal]
    uber_bonuses: Optional[Decimal]
    uber_net_amount: Optional[Decimal]
    freenow_gross_revenue: Optional[Decimal]
    freenow_commission: Optional[Decimal]
    freenow_tips: Optional[Decimal]
    freenow_bonuses: Optional[Decimal]
    freenow_net_amount: Optional[Decimal]

    total_platform_net: Decimal
    partner_commission_amount: Decimal
    vehicle_rental_deduction: Decimal
    insurance_deduction: Decimal
    fuel_cost_deduction: Decimal
    line_items_total: Decimal
    cash_collected_by_driver: Decimal
    driver_net_earnings: Decimal
    payout_amount: Decimal
    total_rides: int
    completed_rides: int

    status: SettlementStatus
    notes: Optional[str]
    payout_reference: Optional[str]
    calculated_at: Optional[datetime]
    approved_at: Optional[datetime]
    paid_at: Optional[datetime]

    class Config:
        from_attributes = True


class ManualDeductionsUpdate(BaseModel):
    """Manual fuel deduction and/or cash collected override."""
    fuel_cost_deduction: Optional[Decimal] = Field(None, ge=0)
    cash_collected_by_driver: Optional[Decimal] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_not_empty(self):
        if self.fuel_cost_deduction is None and self.cash_collected_by_driver is None:
            raise ValueError("Provide fuel_cost_deduction and/or cash_collected_by_driver")
        return self


class MarkPaidRequest(BaseModel):
    payout_reference: Optional[str] = Field(None, max_length=140)


class BulkMarkPaidRequest(MarkPaidRequest):
    settlement_ids: List[int] = Field(..., min_length=1)


class BulkMarkPaidResponse(BaseModel):
    updated: int


class DisputeRequest(BaseModel):
    notes: Optional[str] = None


class LineItemCreate(BaseModel):
    """Schema for adding a bonus or deduction to a settlement."""
    type: LineItemType
    description: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., ge=Decimal("0.01"))


class LineItemResponse(BaseModel):
    id: int
    settlement_id: int
    type: LineItemType
    description: str
    amount: Decimal
    is_auto_applied: bool

    class Config:
        from_attributes = True


class BatchSettlementSuccess(BaseModel):
    driver_id: int
    name: str
    settlement_id: int


class BatchSettlementError(BaseModel):
    driver_id: int
    name: str
    error: str


class BatchSettlementResponse(BaseModel):
    results: List[BatchSettlementSuccess]
    errors: List[BatchSettlementError]

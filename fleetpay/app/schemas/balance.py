"""
Driver Balance Schemas.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from decimal import Decimal
from typing import Optional, List


class BalanceEntryResponse(BaseModel):
    """One ledger entry."""
    id: int
    driver_id: int
    settlement_id: Optional[int]
    previous_entry_id: Optional[int]
    period_start: datetime
    period_end: datetime
    opening_balance: Decimal
    settlement_net: Decimal
    line_items_total: Decimal
    cash_collected: Decimal
    payout_made: Decimal
    adjustments: Decimal
    closing_balance: Decimal
    notes: Optional[str]

    class Config:
        from_attributes = True


class DriverBalanceResponse(BaseModel):
    """Current balance plus recent history (newest first)."""
    driver_id: int
    current_balance: Decimal
    last_entry: Optional[BalanceEntryResponse]
    history: List[BalanceEntryResponse]


class ManualAdjustmentCreate(BaseModel):
    """Positive credits the driver, negative debits."""
    amount: Decimal = Field(..., decimal_places=2)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("amount")
    @classmethod
    def amount_not_zero(cls, value: Decimal) -> Decimal:
        if value == 0:
            raise ValueError("Adjustment amount must not be zero")
        return value

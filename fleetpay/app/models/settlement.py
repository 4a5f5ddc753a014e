"""
Settlement database model.

The computed financial statement for one driver over one period.
"""

from sqlalchemy import Column, Integer, Numeric, ForeignKey, DateTime, Enum, String, Text, UniqueConstraint
from sqlalchemy.sql import func
from fleetpay.app.db.session import Base
from fleetpay.app.models.billing_enums import SettlementStatus


class Settlement(Base):
    """
    Settlement model.

    Naturally keyed by (driver_id, period_start, period_end); recalculation
    overwrites the financial fields of the existing row in place. Platform
    columns stay NULL when the platform had no rides in the period.
    Workflow: CALCULATED -> APPROVED -> PAID (DISPUTED on the side).
    """
    __tablename__ = "settlements"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Parties
    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=False, index=True)
    partner_id = Column(Integer, ForeignKey('partners.id'), nullable=False, index=True)

    # Period (inclusive on both ends)
    period_start = Column(DateTime, nullable=False)
    period_end = Column(DateTime, nullable=False, index=True)

    # Bolt
    bolt_gross_revenue = Column(Numeric(12, 2), nullable=True)
    bolt_commission = Column(Numeric(12, 2), nullable=True)
    bolt_tips = Column(Numeric(12, 2), nullable=True)
    bolt_bonuses = Column(Numeric(12, 2), nullable=True)
    bolt_cash_service_fee = Column(Numeric(12, 2), nullable=True)
    bolt_net_amount = Column(Numeric(12, 2), nullable=True)

    # Uber
    uber_gross_revenue = Column(Numeric(12, 2), nullable=True)
    uber_commission = Column(Numeric(12, 2), nullable=True)
    uber_tips = Column(Numeric(12, 2), nullable=True)
    uber_bonuses = Column(Numeric(12, 2), nullable=True)
    uber_net_amount = Column(Numeric(12, 2), nullable=True)

    # FreeNow
    freenow_gross_revenue = Column(Numeric(12, 2), nullable=True)
    freenow_commission = Column(Numeric(12, 2), nullable=True)
    freenow_tips = Column(Numeric(12, 2), nullable=True)
    freenow_bonuses = Column(Numeric(12, 2), nullable=True)
    freenow_net_amount = Column(Numeric(12, 2), nullable=True)

    # Combined
    total_platform_net = Column(Numeric(12, 2), nullable=False, default=0)

    # Partner deductions
    partner_commission_amount = Column(Numeric(12, 2), nullable=False, default=0)
    vehicle_rental_deduction = Column(Numeric(12, 2), nullable=False, default=0)
    insurance_deduction = Column(Numeric(12, 2), nullable=False, default=0)
    fuel_cost_deduction = Column(Numeric(12, 2), nullable=False, default=0)  # manual entry only
    line_items_total = Column(Numeric(12, 2), nullable=False, default=0)

    # Cash reconciliation
    cash_collected_by_driver = Column(Numeric(12, 2), nullable=False, default=0)

    # Final
    driver_net_earnings = Column(Numeric(12, 2), nullable=False, default=0)
    payout_amount = Column(Numeric(12, 2), nullable=False, default=0)

    # Stats
    total_rides = Column(Integer, nullable=False, default=0)
    completed_rides = Column(Integer, nullable=False, default=0)

    # Status
    status = Column(Enum(SettlementStatus), default=SettlementStatus.CALCULATED, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    payout_reference = Column(String(140), nullable=True)

    # Workflow timestamps
    calculated_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('driver_id', 'period_start', 'period_end', name='uq_settlements_driver_period'),
    )

    def __repr__(self):
        return f"<Settlement(id={self.id}, driver_id={self.driver_id}, status='{self.status.value}', payout={self.payout_amount})>"

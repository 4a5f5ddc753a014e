"""
Driver Balance database model.

One entry of the forward-chained running account of a driver.
"""

from sqlalchemy import Column, Integer, Numeric, ForeignKey, DateTime, Text, Index
from sqlalchemy.sql import func
from fleetpay.app.db.session import Base


class DriverBalance(Base):
    """
    Driver Balance ledger entry.

    Settlement-derived entries are keyed 1:1 by settlement_id and upserted
    on recalculation. Manual adjustments have no settlement and are always
    inserted as new rows.

    closing_balance = opening_balance + settlement_net - cash_collected + adjustments

    previous_entry_id links to the entry whose closing balance opened this
    one. It is unique, so two entries can never open from the same
    predecessor (a fork) even across processes. The partial index below
    does the same for the chain start, where previous_entry_id is NULL.
    """
    __tablename__ = "driver_balances"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=False, index=True)
    partner_id = Column(Integer, ForeignKey('partners.id'), nullable=False, index=True)
    settlement_id = Column(Integer, ForeignKey('settlements.id'), nullable=True, unique=True)
    previous_entry_id = Column(Integer, ForeignKey('driver_balances.id'), nullable=True, unique=True)

    period_start = Column(DateTime, nullable=False)
    period_end = Column(DateTime, nullable=False, index=True)

    # Financials
    opening_balance = Column(Numeric(12, 2), nullable=False, default=0)
    settlement_net = Column(Numeric(12, 2), nullable=False, default=0)
    line_items_total = Column(Numeric(12, 2), nullable=False, default=0)
    cash_collected = Column(Numeric(12, 2), nullable=False, default=0)
    payout_made = Column(Numeric(12, 2), nullable=False, default=0)  # informational
    adjustments = Column(Numeric(12, 2), nullable=False, default=0)
    closing_balance = Column(Numeric(12, 2), nullable=False, default=0)

    notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Only one chain start per driver
    __table_args__ = (
        Index('ix_driver_balances_chain_start', 'driver_id', unique=True,
              postgresql_where=previous_entry_id.is_(None),
              sqlite_where=previous_entry_id.is_(None)),
    )

    def __repr__(self):
        return f"<DriverBalance(id={self.id}, driver_id={self.driver_id}, closing={self.closing_balance})>"

"""
Audit Log Database Model.

Tracks every state change of settlements and driver balances so an
audited settlement statement can be traced back to who changed what.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from fleetpay.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model for tracking settlement and ledger actions.

    Events logged:
    - SETTLEMENT_CALCULATED / SETTLEMENT_APPROVED / SETTLEMENT_PAID / SETTLEMENT_DISPUTED
    - LINE_ITEM_ADDED / LINE_ITEM_REMOVED / MANUAL_DEDUCTIONS_UPDATED
    - BALANCE_ADJUSTED
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system actions)
    actor_id = Column(Integer, index=True, nullable=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # Scope of the action
    partner_id = Column(Integer, index=True, nullable=True)
    driver_id = Column(Integer, index=True, nullable=True)
    settlement_id = Column(Integer, index=True, nullable=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    # Timestamp
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', driver_id={self.driver_id}, settlement_id={self.settlement_id})>"

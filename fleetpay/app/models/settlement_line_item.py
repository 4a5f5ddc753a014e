"""
Settlement Line Item database model.

Ad-hoc bonus or deduction attached to one settlement.
"""

from sqlalchemy import Column, Integer, Numeric, ForeignKey, DateTime, Enum, String, Boolean
from sqlalchemy.sql import func
from fleetpay.app.db.session import Base
from fleetpay.app.models.billing_enums import LineItemType


class SettlementLineItem(Base):
    """
    Settlement Line Item model.

    Amount is always positive; the type decides the sign.
    """
    __tablename__ = "settlement_line_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    settlement_id = Column(Integer, ForeignKey('settlements.id'), nullable=False, index=True)

    type = Column(Enum(LineItemType), nullable=False)
    description = Column(String(255), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    is_auto_applied = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<SettlementLineItem(id={self.id}, type='{self.type.value}', amount={self.amount})>"

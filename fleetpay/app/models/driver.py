"""
Driver database model.

Holds the commission configuration the settlement engine evaluates.
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Enum, ForeignKey
from sqlalchemy.sql import func
from fleetpay.app.db.session import Base
from fleetpay.app.models.enums import CommissionModel, SettlementFrequency, DriverStatus


class Driver(Base):
    """
    Driver model.

    A driver belongs to a Partner and is optionally assigned a Vehicle.
    Commission fields are nullable; a model whose field is missing
    evaluates to zero commission rather than failing.
    """
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Ownership
    partner_id = Column(Integer, ForeignKey('partners.id'), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=True, index=True)

    # Identity
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)

    status = Column(Enum(DriverStatus), default=DriverStatus.ACTIVE, nullable=False, index=True)

    # Commission configuration
    commission_model = Column(Enum(CommissionModel), default=CommissionModel.PERCENTAGE, nullable=False)
    commission_rate = Column(Numeric(5, 2), nullable=True)  # percent, e.g. 25.00
    fixed_fee = Column(Numeric(12, 2), nullable=True)
    hybrid_threshold = Column(Numeric(12, 2), nullable=True)
    per_ride_fee = Column(Numeric(12, 2), nullable=True)
    settlement_frequency = Column(Enum(SettlementFrequency), default=SettlementFrequency.WEEKLY, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Driver(id={self.id}, name='{self.full_name}', model='{self.commission_model.value}')>"

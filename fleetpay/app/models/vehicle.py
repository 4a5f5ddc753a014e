"""
Vehicle database model.

Carries the monthly recurring costs deducted from an assigned driver.
"""

from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from fleetpay.app.db.session import Base


class Vehicle(Base):
    """
    Vehicle model.

    A vehicle is registered by a Partner. Its monthly rental and insurance
    costs are prorated onto every settlement of the driver it is assigned to.
    """
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Ownership - Vehicle belongs to Partner
    partner_id = Column(Integer, ForeignKey('partners.id'), nullable=False, index=True)

    # Vehicle identification
    license_plate = Column(String(20), unique=True, nullable=False, index=True)
    make = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)

    # Monthly recurring costs
    monthly_rental_cost = Column(Numeric(12, 2), nullable=True)
    insurance_monthly_cost = Column(Numeric(12, 2), nullable=True)

    # Status
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Vehicle(id={self.id}, plate='{self.license_plate}', partner_id={self.partner_id})>"

"""
Ride database model.

One trip imported from a platform (CSV upload or API sync).
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Enum, ForeignKey, Index
from sqlalchemy.sql import func
from fleetpay.app.db.session import Base
from fleetpay.app.models.enums import PlatformSource, PaymentMethod, RideStatus


class Ride(Base):
    """
    Ride model.

    Read-only to the settlement engine. Once settled the ride is only
    tagged with the consuming settlement's id; its amounts never change.
    """
    __tablename__ = "rides"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=False, index=True)
    source = Column(Enum(PlatformSource), nullable=False, index=True)
    external_ride_id = Column(String(100), nullable=True)

    # Financials as reported by the platform
    fare_amount = Column(Numeric(12, 2), nullable=True)
    tip_amount = Column(Numeric(12, 2), nullable=True)
    platform_commission_amount = Column(Numeric(12, 2), nullable=True)

    payment_method = Column(Enum(PaymentMethod), default=PaymentMethod.UNKNOWN, nullable=False)
    status = Column(Enum(RideStatus), default=RideStatus.COMPLETED, nullable=False)

    started_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    # Settlement linkage (null until a settlement consumes the ride)
    settlement_id = Column(Integer, ForeignKey('settlements.id'), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index('ix_rides_driver_completed', 'driver_id', 'completed_at'),
        Index('ix_rides_driver_started', 'driver_id', 'started_at'),
    )

    def __repr__(self):
        return f"<Ride(id={self.id}, source='{self.source.value}', fare={self.fare_amount})>"

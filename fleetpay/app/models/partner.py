"""
Partner database model.

The fleet-operating business that contracts drivers and takes a commission.
"""

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from fleetpay.app.db.session import Base


class Partner(Base):
    """Partner model. Owns drivers, vehicles and settlements."""
    __tablename__ = "partners"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Partner(id={self.id}, name='{self.name}')>"

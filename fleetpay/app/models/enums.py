"""
Ride and driver enumerations.

Shared by the ride data store and the settlement engine.
"""

import enum


class PlatformSource(str, enum.Enum):
    """Ride-hailing platform a ride was booked through."""
    BOLT = "BOLT"
    UBER = "UBER"
    FREENOW = "FREENOW"


class PaymentMethod(str, enum.Enum):
    """How the passenger paid. Only CASH ends up in the driver's pocket."""
    CASH = "CASH"
    CARD = "CARD"
    IN_APP = "IN_APP"
    UNKNOWN = "UNKNOWN"


class RideStatus(str, enum.Enum):
    """Ride outcome enumeration."""
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class CommissionModel(str, enum.Enum):
    """
    How the partner takes its cut of a driver's platform net.

    Models:
        PERCENTAGE: rate % of total platform net
        FIXED: flat fee per settlement period
        HYBRID: flat fee plus rate % of net above a threshold
        PER_RIDE: fee per completed ride
    """
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"
    HYBRID = "HYBRID"
    PER_RIDE = "PER_RIDE"


class SettlementFrequency(str, enum.Enum):
    """Standard settlement period length of a driver."""
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"


class DriverStatus(str, enum.Enum):
    """Driver employment status. Batch runs only cover ACTIVE drivers."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"

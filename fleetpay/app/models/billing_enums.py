"""
Settlement enumerations.
"""

import enum


class SettlementStatus(str, enum.Enum):
    """Settlement status enumeration."""
    DRAFT = "DRAFT"  # Reserved for manually prepared statements
    CALCULATED = "CALCULATED"  # Written by the engine, waiting for review
    APPROVED = "APPROVED"  # Approved by the partner, waiting for payout
    PAID = "PAID"  # Payout transferred
    DISPUTED = "DISPUTED"  # Driver or partner contests the figures


class LineItemType(str, enum.Enum):
    """Settlement line item type enumeration."""
    BONUS = "BONUS"  # Adds to driver net earnings
    DEDUCTION = "DEDUCTION"  # Subtracts from driver net earnings

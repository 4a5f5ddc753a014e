"""
Audit logging service for tracking settlement and ledger changes.

Provides centralized logging for compliance of audited financial documents.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from fleetpay.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    SETTLEMENT_CALCULATED = "SETTLEMENT_CALCULATED"
    SETTLEMENT_APPROVED = "SETTLEMENT_APPROVED"
    SETTLEMENT_PAID = "SETTLEMENT_PAID"
    SETTLEMENT_DISPUTED = "SETTLEMENT_DISPUTED"

    LINE_ITEM_ADDED = "LINE_ITEM_ADDED"
    LINE_ITEM_REMOVED = "LINE_ITEM_REMOVED"
    MANUAL_DEDUCTIONS_UPDATED = "MANUAL_DEDUCTIONS_UPDATED"

    BALANCE_ADJUSTED = "BALANCE_ADJUSTED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    partner_id: Optional[int] = None,
    driver_id: Optional[int] = None,
    settlement_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Record an audit event inside the caller's transaction.

    The row is flushed, not committed: it becomes visible together with the
    change it describes, or not at all.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action (None for the engine)
        partner_id: Partner the action belongs to
        driver_id: Driver affected
        settlement_id: Settlement affected
        metadata: Additional context as JSON

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        action=action,
        partner_id=partner_id,
        driver_id=driver_id,
        settlement_id=settlement_id,
        meta_data=metadata
    )

    db.add(audit_log)
    await db.flush()

    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    settlement_id: Optional[int] = None,
    driver_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering.

    Returns:
        List of AuditLog instances, most recent first
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if settlement_id:
        query = query.where(AuditLog.settlement_id == settlement_id)

    if driver_id:
        query = query.where(AuditLog.driver_id == driver_id)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return result.scalars().all()

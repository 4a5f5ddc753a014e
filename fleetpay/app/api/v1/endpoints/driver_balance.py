"""
Driver Balance API Endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from fleetpay.app.api.v1.endpoints.settlements import get_actor_id
from fleetpay.app.core.config import settings
from fleetpay.app.db.session import get_db
from fleetpay.app.domain.settlement import data_access
from fleetpay.app.domain.settlement.balance_ledger import BalanceLedger
from fleetpay.app.schemas.balance import (
    BalanceEntryResponse, DriverBalanceResponse, ManualAdjustmentCreate
)

router = APIRouter(prefix="/partners/{partner_id}/drivers/{driver_id}/balance", tags=["Driver Balance"])


@router.get("", response_model=DriverBalanceResponse)
async def get_driver_balance(
    partner_id: int = Path(...),
    driver_id: int = Path(...),
    limit: Optional[int] = Query(None, ge=1, le=200),
    db: AsyncSession = Depends(get_db)
):
    """
    Current balance, latest entry and recent history (newest first).
    """
    await data_access.get_driver(db, driver_id, partner_id)

    history = await BalanceLedger.get_balance_history(
        db, driver_id, limit or settings.balance_history_default_limit
    )
    current = await BalanceLedger.get_current_balance(db, driver_id)

    return DriverBalanceResponse(
        driver_id=driver_id,
        current_balance=current,
        last_entry=BalanceEntryResponse.model_validate(history[0]) if history else None,
        history=[BalanceEntryResponse.model_validate(entry) for entry in history],
    )


@router.post("/adjustments", response_model=BalanceEntryResponse, status_code=status.HTTP_201_CREATED)
async def add_balance_adjustment(
    payload: ManualAdjustmentCreate,
    partner_id: int = Path(...),
    driver_id: int = Path(...),
    actor_id: Optional[int] = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """
    Post a manual credit (positive) or debit (negative) to the driver's ledger.
    """
    return await BalanceLedger.add_manual_adjustment(
        db, driver_id, partner_id, payload.amount, notes=payload.notes, actor_id=actor_id
    )

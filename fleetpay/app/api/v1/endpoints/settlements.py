"""
Settlement API Endpoints.

Calculation, preview, batch runs, line items, manual deductions and the
approval workflow of driver settlements, scoped to one partner.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fleetpay.app.core.utils import period_window
from fleetpay.app.db.session import get_db, get_session_factory
from fleetpay.app.domain.settlement.settlement_service import SettlementService
from fleetpay.app.models.billing_enums import SettlementStatus
from fleetpay.app.schemas.settlement import (
    SettlementCreate, SettlementPeriod, SettlementResponse, SettlementPreviewResponse,
    BatchSettlementResponse, ManualDeductionsUpdate, MarkPaidRequest, BulkMarkPaidRequest,
    BulkMarkPaidResponse, DisputeRequest,
    LineItemCreate, LineItemResponse,
)

router = APIRouter(prefix="/partners/{partner_id}", tags=["Settlements"])


async def get_actor_id(x_actor_id: Optional[int] = Header(None)) -> Optional[int]:
    """Caller identity recorded in the audit trail."""
    return x_actor_id


@router.get("/drivers/{driver_id}/settlement-preview", response_model=SettlementPreviewResponse)
async def preview_settlement(
    partner_id: int = Path(...),
    driver_id: int = Path(...),
    period_start: date = Query(...),
    period_end: date = Query(...),
    db: AsyncSession = Depends(get_db)
):
    """
    Calculate a settlement without persisting anything.
    """
    if period_end < period_start:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="period_end must not be before period_start")
    start, end = period_window(period_start, period_end)
    result = await SettlementService.preview_settlement(db, driver_id, partner_id, start, end)
    return SettlementPreviewResponse.model_validate(result, from_attributes=True)


@router.post("/settlements", response_model=SettlementResponse, status_code=status.HTTP_201_CREATED)
async def create_settlement(
    payload: SettlementCreate,
    partner_id: int = Path(...),
    actor_id: Optional[int] = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """
    Calculate and store a driver's settlement for the period.

    Repeating the call for the same driver and period updates the same row.
    """
    start, end = period_window(payload.period_start, payload.period_end)
    settlement_id = await SettlementService.create_or_update_settlement(
        db, payload.driver_id, partner_id, start, end, actor_id=actor_id
    )
    return await SettlementService.get_settlement(db, settlement_id, partner_id)


@router.post("/settlements/batch", response_model=BatchSettlementResponse)
async def create_settlements_batch(
    payload: SettlementPeriod,
    partner_id: int = Path(...),
    actor_id: Optional[int] = Depends(get_actor_id),
    session_factory: async_sessionmaker = Depends(get_session_factory)
):
    """
    Settle every active driver of the partner. Failures are reported per driver.
    """
    start, end = period_window(payload.period_start, payload.period_end)
    batch = await SettlementService.calculate_batch(
        session_factory, partner_id, start, end, actor_id=actor_id
    )
    return BatchSettlementResponse(results=batch.results, errors=batch.errors)


@router.post("/settlements/mark-paid", response_model=BulkMarkPaidResponse)
async def mark_settlements_paid(
    payload: BulkMarkPaidRequest,
    partner_id: int = Path(...),
    actor_id: Optional[int] = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """
    Mark several approved settlements as paid with one payout reference.
    Nothing is updated unless every settlement is APPROVED.
    """
    updated = await SettlementService.mark_paid_bulk(
        db, payload.settlement_ids, partner_id,
        payout_reference=payload.payout_reference, actor_id=actor_id,
    )
    return BulkMarkPaidResponse(updated=updated)


@router.get("/settlements", response_model=List[SettlementResponse])
async def list_settlements(
    partner_id: int = Path(...),
    driver_id: Optional[int] = Query(None),
    settlement_status: Optional[SettlementStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db)
):
    return await SettlementService.list_settlements(db, partner_id, driver_id, settlement_status)


@router.get("/settlements/{settlement_id}", response_model=SettlementResponse)
async def get_settlement(
    partner_id: int = Path(...),
    settlement_id: int = Path(...),
    db: AsyncSession = Depends(get_db)
):
    return await SettlementService.get_settlement(db, settlement_id, partner_id)


@router.post("/settlements/{settlement_id}/recalculate", response_model=SettlementResponse)
async def recalculate_settlement(
    partner_id: int = Path(...),
    settlement_id: int = Path(...),
    actor_id: Optional[int] = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """
    Re-run the calculation from current ride data. Status and line items are kept.
    """
    settlement_id = await SettlementService.recalculate(db, settlement_id, partner_id, actor_id=actor_id)
    return await SettlementService.get_settlement(db, settlement_id, partner_id)


@router.post("/settlements/{settlement_id}/approve", response_model=SettlementResponse)
async def approve_settlement(
    partner_id: int = Path(...),
    settlement_id: int = Path(...),
    actor_id: Optional[int] = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await SettlementService.approve(db, settlement_id, partner_id, actor_id=actor_id)


@router.post("/settlements/{settlement_id}/mark-paid", response_model=SettlementResponse)
async def mark_settlement_paid(
    payload: MarkPaidRequest,
    partner_id: int = Path(...),
    settlement_id: int = Path(...),
    actor_id: Optional[int] = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await SettlementService.mark_paid(
        db, settlement_id, partner_id, payout_reference=payload.payout_reference, actor_id=actor_id
    )


@router.post("/settlements/{settlement_id}/dispute", response_model=SettlementResponse)
async def dispute_settlement(
    payload: DisputeRequest,
    partner_id: int = Path(...),
    settlement_id: int = Path(...),
    actor_id: Optional[int] = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await SettlementService.dispute(
        db, settlement_id, partner_id, notes=payload.notes, actor_id=actor_id
    )


@router.patch("/settlements/{settlement_id}/deductions", response_model=SettlementResponse)
async def update_deductions(
    payload: ManualDeductionsUpdate,
    partner_id: int = Path(...),
    settlement_id: int = Path(...),
    actor_id: Optional[int] = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """
    Set the fuel deduction and/or override the cash collected by the driver.
    """
    return await SettlementService.update_manual_deductions(
        db,
        settlement_id,
        partner_id,
        fuel_cost_deduction=payload.fuel_cost_deduction,
        cash_collected_by_driver=payload.cash_collected_by_driver,
        actor_id=actor_id,
    )


@router.get("/settlements/{settlement_id}/line-items", response_model=List[LineItemResponse])
async def list_line_items(
    partner_id: int = Path(...),
    settlement_id: int = Path(...),
    db: AsyncSession = Depends(get_db)
):
    return await SettlementService.list_line_items(db, settlement_id, partner_id)


@router.post(
    "/settlements/{settlement_id}/line-items",
    response_model=LineItemResponse,
    status_code=status.HTTP_201_CREATED
)
async def add_line_item(
    payload: LineItemCreate,
    partner_id: int = Path(...),
    settlement_id: int = Path(...),
    actor_id: Optional[int] = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await SettlementService.add_line_item(
        db, settlement_id, partner_id, payload.type, payload.description, payload.amount, actor_id=actor_id
    )


@router.delete("/settlements/{settlement_id}/line-items/{line_item_id}", response_model=SettlementResponse)
async def remove_line_item(
    partner_id: int = Path(...),
    settlement_id: int = Path(...),
    line_item_id: int = Path(...),
    actor_id: Optional[int] = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """
    Remove a line item and return the settlement with refreshed totals.
    """
    return await SettlementService.remove_line_item(
        db, settlement_id, line_item_id, partner_id, actor_id=actor_id
    )

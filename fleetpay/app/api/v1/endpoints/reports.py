"""
Report API Endpoints.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from fleetpay.app.db.session import get_db
from fleetpay.app.schemas.report import FleetSummaryResponse
from fleetpay.app.services.reports import ReportService

router = APIRouter(prefix="/partners/{partner_id}/reports", tags=["Reports"])


@router.get("/fleet-summary", response_model=FleetSummaryResponse)
async def fleet_summary(
    partner_id: int = Path(...),
    period_start: date = Query(...),
    period_end: date = Query(...),
    db: AsyncSession = Depends(get_db)
):
    """Per-settlement figures and totals for settlements inside the period."""
    if period_end < period_start:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="period_end must not be before period_start")
    return await ReportService.get_fleet_summary(db, partner_id, period_start, period_end)

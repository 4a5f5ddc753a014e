"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from fleetpay.app.api.v1.endpoints import settlements, driver_balance, reports

router = APIRouter()

router.include_router(settlements.router)
router.include_router(driver_balance.router)
router.include_router(reports.router)

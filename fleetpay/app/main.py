"""
FastAPI Application Entry Point.

This is the main application file for the FleetPay settlement service.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fleetpay.app.core.config import settings
from fleetpay.app.core.observability import ObservabilityMiddleware, configure_logging
from fleetpay.app.api.v1.router import router as api_v1_router
from fleetpay.app.db.session import engine, Base
from fleetpay.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from fleetpay.app.models.partner import Partner
from fleetpay.app.models.vehicle import Vehicle
from fleetpay.app.models.driver import Driver
from fleetpay.app.models.ride import Ride
from fleetpay.app.models.settlement import Settlement
from fleetpay.app.models.settlement_line_item import SettlementLineItem
from fleetpay.app.models.driver_balance import DriverBalance
from fleetpay.app.models.audit_log import AuditLog


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Configures logging.
    2. Creates database tables on startup.
    """
    configure_logging()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Multi-platform ride-hailing settlement engine",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Welcome to FleetPay Settlement API",
        "docs": "/docs",
        "health": "/health",
    }

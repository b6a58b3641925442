from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.orm import Session
import logging

from taskinn.core.config import settings
from taskinn.core.database import engine, Base, get_db
from taskinn.core.exceptions import (
    TaskInnError,
    taskinn_error_handler,
    request_validation_handler,
    unhandled_error_handler,
)
from taskinn.core.rate_limit import limiter
from taskinn.routers.payments.paypal_router import router as paypal_router
from taskinn.routers.payments.coinpayments_router import router as coinpayments_router
from taskinn.routers.payments.payments_router import router as payments_router
from taskinn.routers.wallets.wallets_router import router as wallets_router
from taskinn.routers.workers.workers_router import router as workers_router
from taskinn.routers.admin.admin_router import router as admin_router

# Import models to ensure they are registered with SQLAlchemy
import taskinn.models  # noqa: F401

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.APP_NAME,
    description="Payment settlement and wallet ledger for the TaskInn marketplace",
    version=settings.APP_VERSION,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Error responses: {"success": false, "error": ..., "code": ...}
app.add_exception_handler(TaskInnError, taskinn_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(paypal_router, prefix="/api/payments/paypal", tags=["paypal"])
app.include_router(coinpayments_router, prefix="/api/payments/coinpayments", tags=["coinpayments"])
app.include_router(payments_router, prefix="/api/payments", tags=["payments"])
app.include_router(wallets_router, prefix="/api/wallets", tags=["wallets"])
app.include_router(workers_router, prefix="/api/workers", tags=["workers"])
app.include_router(admin_router, prefix="/api/admin", tags=["admin"])


@app.get("/")
def read_root():
    return {"message": f"Welcome to {settings.APP_NAME}", "version": settings.APP_VERSION}


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.error(f"Health check database query failed: {e}")
        db_status = "error"

    return {"status": "healthy", "database": db_status, "version": settings.APP_VERSION}

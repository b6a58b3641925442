"""
Admin Router
Commission settings and withdrawals from the platform (commission) wallets
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import datetime, timezone
import logging

from taskinn.core.config import settings
from taskinn.core.database import atomic, get_db
from taskinn.core.dependencies import get_current_admin
from taskinn.core.exceptions import ValidationError
from taskinn.models.admin import AdminSettings
from taskinn.schemas.admin_schemas import (
    AdminSettingsResponse,
    AdminSettingsUpdate,
    AdminWalletInfo,
    AdminWalletStatsResponse,
    AdminWithdrawRequest,
    AdminWithdrawResponse,
    AdminWithdrawalSummary,
)
from taskinn.services import admin_settings_service
from taskinn.services.admin_wallet_service import get_admin_wallet, list_admin_wallets, withdraw_commission
from taskinn.utils.validation import require, require_currency, require_positive_amount

# Set up logging
logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/settings", response_model=AdminSettingsResponse)
def get_settings(admin: AdminSettings = Depends(get_current_admin)):
    """Current commission rate and admin account (password hash excluded)"""
    return admin


@router.put("/settings", response_model=AdminSettingsResponse)
def update_settings(
    payload: AdminSettingsUpdate,
    admin: AdminSettings = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return admin_settings_service.update_admin_settings(
        db,
        admin,
        username=payload.username,
        password=payload.password,
        commission_rate=payload.commission_rate,
        email=payload.email,
    )


@router.get("/wallet/stats", response_model=AdminWalletStatsResponse)
def get_wallet_stats(admin: AdminSettings = Depends(get_current_admin), db: Session = Depends(get_db)):
    """Commission collected per currency"""
    wallets = list_admin_wallets(db)
    return AdminWalletStatsResponse(
        commission_rate=admin.commission_rate,
        wallets=[AdminWalletInfo.model_validate(w) for w in wallets],
    )


@router.post("/wallet/withdraw", response_model=AdminWithdrawResponse)
def withdraw(
    payload: AdminWithdrawRequest,
    admin: AdminSettings = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Take collected commission out of the platform wallet"""
    currency_type = require_currency(payload.currency_type)
    amount = require_positive_amount(payload.amount)
    payment_method = require(payload.payment_method, "Payment method is required", "MISSING_PAYMENT_METHOD")
    payment_address = require(payload.payment_address, "Payment address is required", "MISSING_PAYMENT_ADDRESS")

    if amount < settings.MIN_WITHDRAWAL_AMOUNT:
        raise ValidationError(
            f"Minimum withdrawal amount is ${settings.MIN_WITHDRAWAL_AMOUNT:g}",
            code="AMOUNT_TOO_LOW",
        )

    current = get_admin_wallet(db, currency_type)
    previous_balance = current.balance if current is not None else 0.0

    with atomic(db):
        admin_wallet = withdraw_commission(db, currency_type, amount)
        new_balance = admin_wallet.balance

    logger.info(
        f"Admin '{admin.admin_username}' withdrew {amount:.2f} {currency_type} "
        f"via {payment_method} to {payment_address}"
    )
    return AdminWithdrawResponse(
        withdrawal=AdminWithdrawalSummary(
            currency_type=currency_type,
            amount=amount,
            payment_method=payment_method,
            payment_address=payment_address,
            notes=payload.notes,
            previous_balance=previous_balance,
            new_balance=new_balance,
            created_at=datetime.now(timezone.utc),
        )
    )

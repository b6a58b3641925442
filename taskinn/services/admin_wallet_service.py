"""
Admin Commission Sink
Mirrors every commission charge into the platform wallet for its currency.
"""

import logging
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from taskinn.core.exceptions import InsufficientBalanceError
from taskinn.models.admin import AdminWallet

logger = logging.getLogger(__name__)


def get_admin_wallet(db: Session, currency_type: str) -> Optional[AdminWallet]:
    return db.query(AdminWallet).filter(AdminWallet.currency_type == currency_type).first()


def list_admin_wallets(db: Session) -> List[AdminWallet]:
    return db.query(AdminWallet).order_by(AdminWallet.currency_type).all()


def credit_commission(db: Session, currency_type: str, amount: float) -> AdminWallet:
    """
    Add a commission to the platform wallet, opening it on first use

    Must run inside the settlement's transaction.
    """
    admin_wallet = get_admin_wallet(db, currency_type)

    if admin_wallet is None:
        admin_wallet = AdminWallet(
            currency_type=currency_type,
            balance=amount,
            total_earned=amount,
            total_withdrawn=0.0,
        )
        db.add(admin_wallet)
        db.flush()
        return admin_wallet

    db.execute(
        update(AdminWallet)
        .where(AdminWallet.id == admin_wallet.id)
        .values(
            balance=AdminWallet.balance + amount,
            total_earned=AdminWallet.total_earned + amount,
            updated_at=func.now(),
        )
        .execution_options(synchronize_session=False)
    )
    db.refresh(admin_wallet)
    return admin_wallet


def withdraw_commission(db: Session, currency_type: str, amount: float) -> AdminWallet:
    """Debit the platform wallet; must run inside the caller's transaction"""
    admin_wallet = get_admin_wallet(db, currency_type)
    available = admin_wallet.balance if admin_wallet is not None else 0.0

    if admin_wallet is None or available < amount:
        raise InsufficientBalanceError(
            "Insufficient balance for withdrawal",
            details={"requested": amount, "available": available, "shortfall": amount - available},
        )

    result = db.execute(
        update(AdminWallet)
        .where(AdminWallet.id == admin_wallet.id, AdminWallet.balance >= amount)
        .values(
            balance=AdminWallet.balance - amount,
            total_withdrawn=AdminWallet.total_withdrawn + amount,
            updated_at=func.now(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise InsufficientBalanceError("Insufficient balance for withdrawal", details={"requested": amount})

    db.refresh(admin_wallet)
    logger.info(f"Admin withdrew {amount:.2f} {currency_type}, balance now {admin_wallet.balance:.2f}")
    return admin_wallet

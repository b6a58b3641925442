"""
Wallet Mutator
Find-or-create per-(user, currency) wallets and move their balances.

Balances are only ever changed with a single SQL increment
(``balance = balance + :delta``); debits additionally carry
``balance >= :amount`` in the WHERE clause, so two concurrent settlements
can neither lose an update nor overdraw a wallet.
"""

import logging
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from taskinn.core.exceptions import ConflictError, InsufficientBalanceError, NotFoundError
from taskinn.models.wallet import Wallet

logger = logging.getLogger(__name__)


def get_wallet(db: Session, user_id: str, currency_type: str, for_update: bool = False) -> Optional[Wallet]:
    query = db.query(Wallet).filter(Wallet.user_id == user_id, Wallet.currency_type == currency_type)
    if for_update:
        query = query.with_for_update()
    return query.first()


def get_wallet_by_id(db: Session, wallet_id: int) -> Wallet:
    wallet = db.query(Wallet).filter(Wallet.id == wallet_id).first()
    if wallet is None:
        raise NotFoundError(f"Wallet {wallet_id} not found", code="WALLET_NOT_FOUND")
    return wallet


def list_wallets(db: Session, user_id: str) -> List[Wallet]:
    return db.query(Wallet).filter(Wallet.user_id == user_id).order_by(Wallet.id).all()


def create_wallet(db: Session, user_id: str, currency_type: str) -> Wallet:
    """Explicitly open an empty wallet; a second wallet for the same currency is a conflict"""
    if get_wallet(db, user_id, currency_type) is not None:
        raise ConflictError(
            f"Wallet for {currency_type} already exists for this user",
            code="WALLET_ALREADY_EXISTS",
        )

    wallet = Wallet(user_id=user_id, currency_type=currency_type, balance=0.0, total_earned=0.0, total_withdrawn=0.0)
    db.add(wallet)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent create
        db.rollback()
        raise ConflictError(
            f"Wallet for {currency_type} already exists for this user",
            code="WALLET_ALREADY_EXISTS",
        )
    db.refresh(wallet)
    logger.info(f"Created {currency_type} wallet {wallet.id} for user {user_id}")
    return wallet


def ensure_sufficient_balance(wallet: Optional[Wallet], amount: float) -> Wallet:
    """Pre-flight check used before any money leaves the platform"""
    available = wallet.balance if wallet is not None else 0.0
    if wallet is None or available < amount:
        raise InsufficientBalanceError(
            "Insufficient balance",
            details={"available": available, "required": amount},
        )
    return wallet


def adjust_balance(db: Session, wallet: Wallet, delta: float) -> Wallet:
    """
    Atomically add `delta` to an existing wallet

    Credits add to total_earned, debits add to total_withdrawn. A debit that
    would take the balance below zero matches no row and raises
    InsufficientBalanceError. Must run inside the caller's transaction.
    """
    values = {
        "balance": Wallet.balance + delta,
        "updated_at": func.now(),
    }
    stmt = update(Wallet).where(Wallet.id == wallet.id)

    if delta >= 0:
        values["total_earned"] = Wallet.total_earned + delta
    else:
        values["total_withdrawn"] = Wallet.total_withdrawn - delta
        stmt = stmt.where(Wallet.balance >= -delta)

    result = db.execute(stmt.values(**values).execution_options(synchronize_session=False))
    if result.rowcount == 0:
        raise InsufficientBalanceError(
            "Insufficient balance",
            details={"walletId": wallet.id, "required": -delta},
        )

    db.refresh(wallet)
    return wallet


def apply_delta(db: Session, user_id: str, currency_type: str, delta: float) -> Wallet:
    """
    Apply a signed balance change to the user's wallet for `currency_type`

    A missing wallet is created on the first credit; debiting a wallet that
    does not exist is an insufficient-balance error. Must run inside the
    caller's transaction.
    """
    wallet = get_wallet(db, user_id, currency_type, for_update=delta < 0)

    if wallet is None:
        if delta < 0:
            raise InsufficientBalanceError(
                "Insufficient balance",
                details={"available": 0.0, "required": -delta},
            )
        wallet = Wallet(
            user_id=user_id,
            currency_type=currency_type,
            balance=delta,
            total_earned=delta,
            total_withdrawn=0.0,
        )
        db.add(wallet)
        db.flush()
        logger.info(f"Opened {currency_type} wallet {wallet.id} for user {user_id} on first credit")
        return wallet

    return adjust_balance(db, wallet, delta)

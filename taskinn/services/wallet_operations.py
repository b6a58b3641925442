"""
Wallet movements outside the processor flows: manual top-ups, user-reported
deposits, task payments between two wallets of the same currency and
withdrawals paid out by operations
"""

import json
import logging
import uuid
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from taskinn.core.config import settings
from taskinn.core.database import atomic
from taskinn.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from taskinn.models.wallet import (
    Wallet, WalletTransaction, TransactionType, TransactionStatus, TransactionSource,
)
from taskinn.services.commission import CommissionSplit, format_amount
from taskinn.services.ledger import record_transaction
from taskinn.services.settlement import SettlementResult, settle_withdrawal
from taskinn.services.wallet_service import (
    adjust_balance, apply_delta, ensure_sufficient_balance, get_wallet, get_wallet_by_id,
)
from taskinn.utils.validation import require, require_currency, require_positive_amount

logger = logging.getLogger(__name__)


def add_funds(db: Session, user_id: Optional[str], currency_type: Optional[str], amount: Optional[float]) -> Wallet:
    """Manual top-up: credit the full amount, opening the wallet if needed"""
    user_id = require(user_id, "User ID is required", "MISSING_USER_ID")
    currency_type = require_currency(currency_type)
    amount = require_positive_amount(amount)

    with atomic(db):
        wallet = apply_delta(db, user_id, currency_type, amount)
        record_transaction(
            db,
            wallet,
            TransactionType.DEPOSIT.value,
            amount,
            TransactionStatus.COMPLETED.value,
            TransactionSource.MANUAL.value,
            description="Funds added to wallet",
        )

    db.refresh(wallet)
    logger.info(f"Added {amount} {currency_type} to wallet {wallet.id} of user {user_id}")
    return wallet


def transfer(
    db: Session,
    current_user_id: str,
    from_wallet_id: Optional[int],
    to_wallet_id: Optional[int],
    amount: Optional[float],
    task_id: Optional[int] = None,
    submission_id: Optional[int] = None,
) -> Tuple[Wallet, Wallet, WalletTransaction, WalletTransaction]:
    """
    Pay for a task from one wallet into another

    Both legs and both ledger entries commit together or not at all.
    """
    from_wallet_id = require(from_wallet_id, "From wallet ID is required", "MISSING_FROM_WALLET_ID")
    to_wallet_id = require(to_wallet_id, "To wallet ID is required", "MISSING_TO_WALLET_ID")
    amount = require_positive_amount(amount)

    if from_wallet_id == to_wallet_id:
        raise ValidationError("Cannot transfer to the same wallet", code="SAME_WALLET_TRANSFER")

    from_wallet = get_wallet_by_id(db, from_wallet_id)
    to_wallet = get_wallet_by_id(db, to_wallet_id)

    if from_wallet.user_id != current_user_id:
        raise AuthorizationError("You can only transfer from your own wallet", code="FORBIDDEN")

    if from_wallet.currency_type != to_wallet.currency_type:
        raise ConflictError(
            "Currency types must match for transfer",
            code="CURRENCY_MISMATCH",
            details={"fromCurrency": from_wallet.currency_type, "toCurrency": to_wallet.currency_type},
        )

    ensure_sufficient_balance(from_wallet, amount)

    reference = {}
    if task_id:
        reference["taskId"] = task_id
    if submission_id:
        reference["submissionId"] = submission_id
    description = "Payment for task"
    if reference:
        description = f"Payment for task {json.dumps(reference)}"

    with atomic(db):
        adjust_balance(db, from_wallet, -amount)
        adjust_balance(db, to_wallet, amount)
        debit = record_transaction(
            db, from_wallet, TransactionType.TASK_PAYMENT.value, -amount,
            TransactionStatus.COMPLETED.value, TransactionSource.TRANSFER.value,
            description=description,
        )
        credit = record_transaction(
            db, to_wallet, TransactionType.TASK_PAYMENT.value, amount,
            TransactionStatus.COMPLETED.value, TransactionSource.TRANSFER.value,
            description="Payment received for task",
        )

    logger.info(f"Transferred {amount} {from_wallet.currency_type} from wallet {from_wallet.id} to {to_wallet.id}")
    return from_wallet, to_wallet, debit, credit


def deposit(
    db: Session,
    user_id: str,
    currency_type: Optional[str],
    amount: Optional[float],
    transaction_hash: Optional[str] = None,
    notes: Optional[str] = None,
) -> Tuple[Wallet, WalletTransaction]:
    """User-reported deposit: the full amount is credited, no commission"""
    amount = require_positive_amount(amount)
    if amount < settings.MIN_DEPOSIT_AMOUNT:
        raise ValidationError(
            f"Minimum deposit amount is ${settings.MIN_DEPOSIT_AMOUNT:g}",
            code="AMOUNT_TOO_LOW",
        )
    currency_type = require_currency(currency_type)
    notes = notes.strip() if notes else None

    with atomic(db):
        wallet = apply_delta(db, user_id, currency_type, amount)
        transaction = record_transaction(
            db,
            wallet,
            TransactionType.DEPOSIT.value,
            amount,
            TransactionStatus.COMPLETED.value,
            TransactionSource.MANUAL.value,
            reference_id=f"deposit_{uuid.uuid4().hex}",
            description=f"Deposit to wallet - {notes}" if notes else "Deposit to wallet",
            transaction_hash=transaction_hash.strip() if transaction_hash and transaction_hash.strip() else None,
        )

    db.refresh(wallet)
    logger.info(f"User {user_id} deposited {amount} {currency_type} into wallet {wallet.id}")
    return wallet, transaction


def withdraw_to_address(
    db: Session,
    user_id: str,
    amount: Optional[float],
    currency_type: Optional[str],
    payment_method: Optional[str],
    payment_address: Optional[str],
    notes: Optional[str] = None,
) -> Tuple[SettlementResult, float, Wallet]:
    """
    Withdraw from a wallet to an address handled outside the processors

    Commission is charged like any other withdrawal. Returns the settlement,
    the balance before the debit and the refreshed wallet.
    """
    if amount is None:
        raise ValidationError("Amount is required", code="MISSING_AMOUNT")
    if not currency_type:
        raise ValidationError("Currency type is required", code="MISSING_CURRENCY_TYPE")
    payment_method = require(payment_method, "Payment method is required", "MISSING_PAYMENT_METHOD")
    payment_address = require(payment_address, "Payment address is required", "MISSING_PAYMENT_ADDRESS")
    amount = require_positive_amount(amount)
    if amount < settings.MIN_WITHDRAWAL_AMOUNT:
        raise ValidationError(
            f"Minimum withdrawal amount is ${settings.MIN_WITHDRAWAL_AMOUNT:g}",
            code="AMOUNT_TOO_LOW",
        )
    currency_type = require_currency(currency_type)
    notes = notes.strip() if notes else None

    wallet = get_wallet(db, user_id, currency_type)
    if wallet is None:
        raise NotFoundError("Wallet not found", code="WALLET_NOT_FOUND")
    previous_balance = wallet.balance

    def send(split: CommissionSplit):
        # Paid out by operations; the ledger entry is final on creation
        return f"withdrawal_{uuid.uuid4().hex}", None, True

    def describe(split: CommissionSplit) -> str:
        description = (
            f"Withdrawal to {payment_method}: {payment_address}. "
            f"Commission: {format_amount(split.commission)} {currency_type}. "
            f"Net amount: {format_amount(split.net)} {currency_type}"
        )
        return f"{description}. {notes}" if notes else description

    result = settle_withdrawal(
        db,
        user_id=user_id,
        currency_type=currency_type,
        gross=amount,
        source=TransactionSource.MANUAL.value,
        send=send,
        description=describe,
    )

    db.refresh(wallet)
    return result, previous_balance, wallet

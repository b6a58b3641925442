"""
Settlement orchestration shared by every payment source

A settlement turns one external payment event into ledger state:
split -> wallet mutation -> ledger entry -> admin commission. The local
steps always run in a single database transaction; processor calls always
happen before that transaction opens.
"""

import logging
from typing import Callable, Optional, Tuple

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskinn.core.database import atomic
from taskinn.core.exceptions import (
    DuplicateTransactionError,
    InsufficientBalanceError,
    InternalError,
    ValidationError,
)
from taskinn.models.wallet import TransactionType, TransactionStatus
from taskinn.services.admin_wallet_service import credit_commission
from taskinn.services.commission import CommissionSplit, compute_split, get_commission_rate
from taskinn.services.ledger import find_transaction, record_transaction
from taskinn.services.wallet_service import apply_delta, ensure_sufficient_balance, get_wallet

logger = logging.getLogger(__name__)

# (reference_id, processor_status, completed)
ProcessorReceipt = Tuple[str, str, bool]


class SettlementResult(BaseModel):
    split: CommissionSplit
    currency_type: str
    reference_id: Optional[str] = None
    status: str
    processor_status: Optional[str] = None
    wallet_id: Optional[int] = None
    transaction_id: Optional[int] = None
    duplicate: bool = False


def settle_deposit(
    db: Session,
    user_id: str,
    currency_type: str,
    gross: float,
    source: str,
    reference_id: str,
    description: Callable[[CommissionSplit], str],
    fee: float = 0.0,
) -> SettlementResult:
    """
    Credit a confirmed external deposit to the user's wallet

    Replays of an already-settled `reference_id` are reported as
    duplicates and touch nothing.
    """
    split = compute_split(gross, get_commission_rate(db), fee)

    existing = find_transaction(db, source, reference_id)
    if existing is not None:
        logger.warning(f"Deposit {source}:{reference_id} already settled as transaction {existing.id}, skipping")
        return _duplicate_result(split, currency_type, existing)

    if split.net < 0:
        raise ValidationError(
            f"Fee {fee} exceeds the deposit after commission",
            code="NET_AMOUNT_NEGATIVE",
        )

    try:
        with atomic(db):
            wallet = apply_delta(db, user_id, currency_type, split.net)
            transaction = record_transaction(
                db,
                wallet,
                TransactionType.DEPOSIT.value,
                split.net,
                TransactionStatus.COMPLETED.value,
                source,
                reference_id=reference_id,
                description=description(split),
                commission_amount=split.commission,
            )
            credit_commission(db, currency_type, split.commission)
    except DuplicateTransactionError:
        existing = find_transaction(db, source, reference_id)
        logger.warning(f"Deposit {source}:{reference_id} settled concurrently, skipping")
        return _duplicate_result(split, currency_type, existing)
    except SQLAlchemyError as e:
        logger.critical(
            f"Deposit {source}:{reference_id} for user {user_id} confirmed by processor but not recorded: {e}",
            exc_info=True,
        )
        raise InternalError("Deposit could not be recorded")

    logger.info(
        f"Settled deposit {source}:{reference_id} for user {user_id}: gross={split.gross} "
        f"commission={split.commission} fee={split.fee} net={split.net} {currency_type}"
    )
    return SettlementResult(
        split=split,
        currency_type=currency_type,
        reference_id=reference_id,
        status=transaction.status,
        wallet_id=wallet.id,
        transaction_id=transaction.id,
    )


def settle_withdrawal(
    db: Session,
    user_id: str,
    currency_type: str,
    gross: float,
    source: str,
    send: Callable[[CommissionSplit], ProcessorReceipt],
    description: Callable[[CommissionSplit], str],
) -> SettlementResult:
    """
    Pay out of the user's wallet through a processor

    The wallet must cover the gross amount; the processor is asked to send
    the net amount; the wallet is debited the gross amount and the
    commission stays with the platform.
    """
    split = compute_split(gross, get_commission_rate(db))

    ensure_sufficient_balance(get_wallet(db, user_id, currency_type), gross)

    # No transaction stays open across the processor call
    db.rollback()

    reference_id, processor_status, completed = send(split)
    status = TransactionStatus.COMPLETED.value if completed else TransactionStatus.PENDING.value

    try:
        with atomic(db):
            wallet = apply_delta(db, user_id, currency_type, -gross)
            transaction = record_transaction(
                db,
                wallet,
                TransactionType.WITHDRAWAL.value,
                gross,
                status,
                source,
                reference_id=reference_id,
                description=description(split),
                commission_amount=split.commission,
            )
            credit_commission(db, currency_type, split.commission)
    except (InsufficientBalanceError, DuplicateTransactionError, SQLAlchemyError) as e:
        # TODO: queue these for the reconciliation job instead of relying on the log alone
        logger.critical(
            f"Payout {source}:{reference_id} of {split.net} {currency_type} sent for user {user_id} "
            f"but the wallet debit of {gross} failed: {e}"
        )
        raise InternalError("Withdrawal was sent but could not be recorded; support has been notified")

    logger.info(
        f"Settled withdrawal {source}:{reference_id} for user {user_id}: gross={split.gross} "
        f"commission={split.commission} net={split.net} {currency_type} status={status}"
    )
    return SettlementResult(
        split=split,
        currency_type=currency_type,
        reference_id=reference_id,
        status=status,
        processor_status=processor_status,
        wallet_id=wallet.id,
        transaction_id=transaction.id,
    )


def _duplicate_result(split: CommissionSplit, currency_type: str, existing) -> SettlementResult:
    return SettlementResult(
        split=split,
        currency_type=currency_type,
        reference_id=existing.reference_id if existing else None,
        status=existing.status if existing else TransactionStatus.COMPLETED.value,
        wallet_id=existing.wallet_id if existing else None,
        transaction_id=existing.id if existing else None,
        duplicate=True,
    )

"""
Transaction Recorder
Append-only wallet ledger keyed by (source, reference_id)
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskinn.core.exceptions import DuplicateTransactionError
from taskinn.models.wallet import Wallet, WalletTransaction, TransactionType, TransactionStatus

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20


def find_transaction(db: Session, source: str, reference_id: Optional[str]) -> Optional[WalletTransaction]:
    if not reference_id:
        return None
    return db.query(WalletTransaction).filter(
        WalletTransaction.source == source,
        WalletTransaction.reference_id == reference_id,
    ).first()


def get_transaction(db: Session, transaction_id: int) -> Optional[WalletTransaction]:
    return db.query(WalletTransaction).filter(WalletTransaction.id == transaction_id).first()


def record_transaction(
    db: Session,
    wallet: Wallet,
    transaction_type: str,
    amount: float,
    status: str,
    source: str,
    reference_id: Optional[str] = None,
    description: Optional[str] = None,
    commission_amount: Optional[float] = None,
    transaction_hash: Optional[str] = None,
) -> WalletTransaction:
    """
    Append a ledger entry for `wallet`

    Withdrawals are stored negative and deposits positive whatever the sign
    of `amount`; task payments keep the caller's sign (debit or credit).
    An entry whose (source, reference_id) already exists raises
    DuplicateTransactionError. Must run inside the caller's transaction.
    """
    if transaction_type == TransactionType.WITHDRAWAL.value:
        amount = -abs(amount)
    elif transaction_type == TransactionType.DEPOSIT.value:
        amount = abs(amount)

    if find_transaction(db, source, reference_id) is not None:
        raise DuplicateTransactionError(f"Transaction {source}:{reference_id} already recorded")

    transaction = WalletTransaction(
        wallet_id=wallet.id,
        transaction_type=transaction_type,
        amount=amount,
        currency_type=wallet.currency_type,
        status=status,
        source=source,
        reference_id=reference_id,
        commission_amount=commission_amount,
        description=description,
        transaction_hash=transaction_hash,
    )
    db.add(transaction)
    try:
        db.flush()
    except IntegrityError:
        # Concurrent insert of the same reference slipped past the lookup
        raise DuplicateTransactionError(f"Transaction {source}:{reference_id} already recorded")
    return transaction


def list_transactions(db: Session, wallet_id: int, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0) -> List[WalletTransaction]:
    """Newest first; `limit` is capped at MAX_PAGE_SIZE"""
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    offset = max(0, offset)
    return (
        db.query(WalletTransaction)
        .filter(WalletTransaction.wallet_id == wallet_id)
        .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )


def mark_completed(db: Session, source: str, reference_id: str) -> Optional[WalletTransaction]:
    """Move a pending entry to completed once the processor confirms it"""
    transaction = find_transaction(db, source, reference_id)
    if transaction is None:
        return None
    if transaction.status == TransactionStatus.PENDING.value:
        transaction.status = TransactionStatus.COMPLETED.value
        db.commit()
        db.refresh(transaction)
        logger.info(f"Transaction {source}:{reference_id} confirmed by processor")
    return transaction

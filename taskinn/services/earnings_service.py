"""
Worker earnings: task payments received into one wallet, with the
withdrawals taken out of it
"""

from datetime import datetime, timezone
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from taskinn.models.wallet import WalletTransaction, TransactionType, TransactionStatus
from taskinn.schemas.wallet_schemas import EarningsData, EarningsEntry, EarningsSummary
from taskinn.services.ledger import MAX_PAGE_SIZE
from taskinn.services.wallet_service import get_wallet


def _completed_sum(db: Session, wallet_id: int, transaction_type: str, *criteria, column=None) -> float:
    column = column if column is not None else WalletTransaction.amount
    total = db.query(func.coalesce(func.sum(column), 0.0)).filter(
        WalletTransaction.wallet_id == wallet_id,
        WalletTransaction.transaction_type == transaction_type,
        WalletTransaction.status == TransactionStatus.COMPLETED.value,
        *criteria,
    ).scalar()
    return float(total or 0.0)


def get_worker_earnings(
    db: Session, user_id: str, currency_type: str, limit: int = 20, offset: int = 0
) -> EarningsData:
    wallet = get_wallet(db, user_id, currency_type)
    if wallet is None:
        return EarningsData(
            summary=EarningsSummary(total_earnings=0.0, available_balance=0.0, this_month_earnings=0.0, total_withdrawn=0.0),
            transactions=[],
        )

    task_payment = TransactionType.TASK_PAYMENT.value
    received = WalletTransaction.amount > 0
    start_of_month = datetime.now(timezone.utc).replace(day=1, hour=0, minute=0, second=0, microsecond=0, tzinfo=None)

    summary = EarningsSummary(
        total_earnings=_completed_sum(db, wallet.id, task_payment, received),
        available_balance=float(wallet.balance),
        this_month_earnings=_completed_sum(
            db, wallet.id, task_payment, received, WalletTransaction.created_at >= start_of_month
        ),
        total_withdrawn=_completed_sum(
            db, wallet.id, TransactionType.WITHDRAWAL.value, column=func.abs(WalletTransaction.amount)
        ),
    )

    entries: List[WalletTransaction] = (
        db.query(WalletTransaction)
        .filter(
            WalletTransaction.wallet_id == wallet.id,
            WalletTransaction.transaction_type.in_([task_payment, TransactionType.WITHDRAWAL.value]),
        )
        .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
        .limit(max(1, min(limit, MAX_PAGE_SIZE)))
        .offset(max(0, offset))
        .all()
    )

    return EarningsData(
        summary=summary,
        transactions=[
            EarningsEntry(
                id=entry.id,
                type=entry.transaction_type,
                amount=entry.amount,
                currency_type=entry.currency_type,
                status=entry.status,
                description=entry.description,
                created_at=entry.created_at,
            )
            for entry in entries
        ],
    )

"""
Worker payment records: withdrawal requests and earnings statistics
"""

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from taskinn.core.config import settings
from taskinn.core.exceptions import InsufficientBalanceError, ValidationError
from taskinn.models.payment import Payment, PaymentType, PaymentStatus, PaymentMethod, EARNING_TYPES
from taskinn.schemas.payment_schemas import PaymentStatsResponse
from taskinn.utils.validation import require, require_positive_amount

logger = logging.getLogger(__name__)


def _sum(db: Session, user_id: str, status: str, payment_types) -> float:
    total = db.query(func.coalesce(func.sum(Payment.amount), 0.0)).filter(
        Payment.user_id == user_id,
        Payment.status == status,
        Payment.payment_type.in_(payment_types),
    ).scalar()
    return float(total or 0.0)


def get_payment_stats(db: Session, user_id: str) -> PaymentStatsResponse:
    total_earnings = _sum(db, user_id, PaymentStatus.COMPLETED.value, EARNING_TYPES)
    total_withdrawals = _sum(db, user_id, PaymentStatus.COMPLETED.value, [PaymentType.WITHDRAWAL.value])
    pending_earnings = _sum(db, user_id, PaymentStatus.PENDING.value, EARNING_TYPES)
    pending_withdrawals = _sum(db, user_id, PaymentStatus.PENDING.value, [PaymentType.WITHDRAWAL.value])
    total_transactions = db.query(func.count(Payment.id)).filter(Payment.user_id == user_id).scalar() or 0

    return PaymentStatsResponse(
        user_id=user_id,
        total_earnings=round(total_earnings, 2),
        total_withdrawals=round(total_withdrawals, 2),
        pending_earnings=round(pending_earnings, 2),
        pending_withdrawals=round(pending_withdrawals, 2),
        available_balance=round(total_earnings - total_withdrawals, 2),
        total_transactions=int(total_transactions),
    )


def list_payments(db: Session, user_id: str, limit: int = 20, offset: int = 0) -> List[Payment]:
    limit = max(1, min(limit, 100))
    return (
        db.query(Payment)
        .filter(Payment.user_id == user_id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .limit(limit)
        .offset(max(0, offset))
        .all()
    )


def create_withdrawal_request(
    db: Session,
    user_id: str,
    amount: Optional[float],
    payment_method: Optional[str],
    payment_address: Optional[str],
    currency: Optional[str] = None,
    notes: Optional[str] = None,
) -> Payment:
    """
    Queue a withdrawal of earnings for manual processing

    The request may not exceed what is still available once the user's
    other pending withdrawals are taken into account.
    """
    amount = require_positive_amount(amount)
    payment_method = require(payment_method, "Payment method is required", "MISSING_PAYMENT_METHOD")
    payment_address = require(payment_address, "Payment address is required", "MISSING_PAYMENT_ADDRESS")

    if amount < settings.MIN_WITHDRAWAL_AMOUNT:
        raise ValidationError(
            f"Minimum withdrawal amount is ${settings.MIN_WITHDRAWAL_AMOUNT:g}",
            code="AMOUNT_TOO_LOW",
        )

    valid_methods = [m.value for m in PaymentMethod]
    if payment_method not in valid_methods:
        raise ValidationError(
            f"Invalid payment method. Must be one of: {', '.join(valid_methods)}",
            code="INVALID_PAYMENT_METHOD",
        )

    stats = get_payment_stats(db, user_id)
    available = stats.available_balance - stats.pending_withdrawals
    if amount > available:
        raise InsufficientBalanceError(
            "Insufficient balance",
            details={"available": round(available, 2), "required": amount},
        )

    payment = Payment(
        user_id=user_id,
        amount=amount,
        currency=currency.strip().upper() if currency else "USD",
        payment_type=PaymentType.WITHDRAWAL.value,
        status=PaymentStatus.PENDING.value,
        payment_method=payment_method,
        payment_address=payment_address,
        notes=notes.strip() if notes else None,
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)

    logger.info(f"User {user_id} requested withdrawal {payment.id} of {amount} via {payment_method}")
    return payment

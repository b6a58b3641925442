"""
PayPal settlement handlers: order create/capture (deposits) and payouts
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from taskinn.core.paypal_client import PayPalClient
from taskinn.models.wallet import CurrencyType, TransactionSource, TransactionStatus
from taskinn.schemas.processor_schemas import PayPalOrder, PayPalPayout
from taskinn.services.commission import CommissionSplit, format_amount
from taskinn.services.ledger import mark_completed, find_transaction
from taskinn.services.settlement import SettlementResult, settle_deposit, settle_withdrawal
from taskinn.utils.validation import require, require_positive_amount

logger = logging.getLogger(__name__)

CURRENCY = CurrencyType.USD.value
PAYOUT_SUCCESS = "SUCCESS"


def create_order(paypal: PayPalClient, amount: Optional[float]) -> PayPalOrder:
    amount = require_positive_amount(amount)
    order = paypal.create_order(amount, "USD")
    logger.info(f"Created PayPal order {order.order_id} for {format_amount(amount)} USD")
    return order


def capture_order(db: Session, paypal: PayPalClient, order_id: Optional[str], user_id: Optional[str]) -> SettlementResult:
    """
    Capture an approved order and credit the net amount to the user's USD wallet

    The deposit is settled for the amount PayPal reports as captured, never
    an amount supplied by the client.
    """
    order_id = require(order_id, "Missing required fields: orderId", "MISSING_ORDER_ID")
    user_id = require(user_id, "Missing required fields: userId", "MISSING_USER_ID")

    capture = paypal.capture_order(order_id)

    def describe(split: CommissionSplit) -> str:
        return f"PayPal deposit - Commission: ${format_amount(split.commission)}"

    return settle_deposit(
        db,
        user_id=user_id,
        currency_type=CURRENCY,
        gross=capture.amount,
        source=TransactionSource.PAYPAL_CAPTURE.value,
        reference_id=capture.capture_id,
        description=describe,
    )


def payout(
    db: Session,
    paypal: PayPalClient,
    user_id: Optional[str],
    amount: Optional[float],
    paypal_email: Optional[str],
) -> SettlementResult:
    """Withdraw from the user's USD wallet to a PayPal account"""
    user_id = require(user_id, "Missing required fields: userId", "MISSING_USER_ID")
    paypal_email = require(paypal_email, "Missing required fields: paypalEmail", "MISSING_PAYPAL_EMAIL")
    amount = require_positive_amount(amount)

    def send(split: CommissionSplit):
        result = paypal.create_payout(
            paypal_email,
            split.net,
            "USD",
            f"TaskInn payout - Net amount after {split.rate * 100:.0f}% commission",
        )
        return result.batch_id, result.status, result.status == PAYOUT_SUCCESS

    def describe(split: CommissionSplit) -> str:
        return f"PayPal withdrawal to {paypal_email} - Commission: ${format_amount(split.commission)}"

    return settle_withdrawal(
        db,
        user_id=user_id,
        currency_type=CURRENCY,
        gross=amount,
        source=TransactionSource.PAYPAL_PAYOUT.value,
        send=send,
        description=describe,
    )


def refresh_payout_status(db: Session, paypal: PayPalClient, batch_id: str) -> tuple[PayPalPayout, Optional[str]]:
    """
    Ask PayPal for the batch status and confirm the local entry once it succeeded

    Returns:
        The processor status and the local ledger status (None when unknown locally)
    """
    result = paypal.get_payout_status(batch_id)
    source = TransactionSource.PAYPAL_PAYOUT.value

    if result.status == PAYOUT_SUCCESS:
        transaction = mark_completed(db, source, batch_id)
    else:
        transaction = find_transaction(db, source, batch_id)

    local_status = transaction.status if transaction is not None else None
    if local_status == TransactionStatus.PENDING.value:
        logger.info(f"PayPal payout {batch_id} still {result.status}")
    return result, local_status

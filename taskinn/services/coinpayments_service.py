"""
CoinPayments settlement handlers
USDT (TRC20) deposit addresses, IPN deposit callbacks and withdrawals
"""

import logging
import math
from typing import Dict, Optional
from urllib.parse import parse_qsl

from sqlalchemy.orm import Session

from taskinn.core.coinpayments_client import CoinPaymentsClient, verify_ipn_signature
from taskinn.core.config import settings
from taskinn.core.exceptions import AuthenticationError, ValidationError
from taskinn.models.wallet import CurrencyType, TransactionSource
from taskinn.schemas.processor_schemas import CryptoDepositAddress, CryptoWithdrawalInfo
from taskinn.services.commission import CommissionSplit, format_amount
from taskinn.services.ledger import find_transaction, mark_completed
from taskinn.services.settlement import SettlementResult, settle_deposit, settle_withdrawal
from taskinn.utils.validation import require, require_positive_amount

logger = logging.getLogger(__name__)

CURRENCY = CurrencyType.USDT_TRC20.value

# Deposit IPN status: < 0 failed, 0-99 in progress, >= 100 finalized
IPN_STATUS_COMPLETE = 100
# Withdrawal status: -1 cancelled, 0 awaiting email confirmation, 1 pending, 2 complete
WITHDRAWAL_STATUS_COMPLETE = 2


def build_label(user_id: str) -> str:
    return f"{settings.COINPAYMENTS_LABEL_PREFIX}{user_id}"


def parse_label(label: Optional[str]) -> Optional[str]:
    """Recover the user id from an address label, None if the label is not ours"""
    prefix = settings.COINPAYMENTS_LABEL_PREFIX
    if not label or not label.startswith(prefix):
        return None
    user_id = label[len(prefix):].strip()
    return user_id or None


def create_deposit_address(coinpayments: CoinPaymentsClient, user_id: Optional[str]) -> CryptoDepositAddress:
    user_id = require(user_id, "User ID is required", "MISSING_USER_ID")
    ipn_url = f"{settings.APP_URL}/api/payments/coinpayments/ipn"
    address = coinpayments.get_callback_address(build_label(user_id), ipn_url)
    logger.info(f"Issued {CURRENCY} deposit address for user {user_id}")
    return address


def process_ipn(db: Session, raw_body: bytes, received_hmac: Optional[str]) -> str:
    """
    Handle an Instant Payment Notification

    Nothing in the body is trusted until the HMAC checks out. After that,
    every outcome is acknowledged (the returned message says which) so
    CoinPayments stops retrying; only settled deposits touch the ledger.

    Raises:
        AuthenticationError: signature missing or invalid
    """
    if not verify_ipn_signature(raw_body, received_hmac):
        logger.warning("Rejected CoinPayments IPN with invalid signature")
        raise AuthenticationError("Invalid signature", code="INVALID_SIGNATURE")

    try:
        form = raw_body.decode('utf-8')
    except UnicodeDecodeError:
        logger.warning("Dropping signed IPN whose body is not valid UTF-8")
        return "Invalid encoding"

    data: Dict[str, str] = dict(parse_qsl(form, keep_blank_values=True))
    logger.info(f"CoinPayments IPN received: type={data.get('ipn_type')} txn={data.get('txn_id')} status={data.get('status')}")

    if settings.COINPAYMENTS_MERCHANT_ID and data.get("merchant") != settings.COINPAYMENTS_MERCHANT_ID:
        logger.warning(f"Dropping IPN for unknown merchant {data.get('merchant')}")
        return "Unknown merchant"

    try:
        status_code = int(data.get("status", ""))
    except ValueError:
        logger.warning(f"Dropping IPN with malformed status {data.get('status')!r}")
        return "Invalid status"

    if data.get("ipn_type") == "withdrawal":
        return _process_withdrawal_ipn(db, data, status_code)

    if status_code < IPN_STATUS_COMPLETE:
        return "Payment pending"

    currency = data.get("currency")
    if currency and currency != settings.COINPAYMENTS_CURRENCY:
        logger.warning(f"Dropping IPN {data.get('txn_id')} in unsupported currency {currency}")
        return "Unsupported currency"

    user_id = parse_label(data.get("label"))
    if not user_id:
        logger.error(f"Invalid IPN label format: {data.get('label')!r}")
        return "Invalid label"

    txn_id = data.get("txn_id")
    if not txn_id:
        logger.warning("Dropping IPN without txn_id")
        return "Missing txn_id"

    try:
        amount = float(data.get("amount", ""))
        fee = float(data.get("fee") or 0)
    except ValueError:
        logger.warning(f"Dropping IPN {txn_id} with malformed amount/fee")
        return "Invalid amount"

    if not math.isfinite(amount) or amount <= 0 or not math.isfinite(fee) or fee < 0:
        logger.warning(f"Dropping IPN {txn_id} with non-positive amount {amount} or fee {fee}")
        return "Invalid amount"

    def describe(split: CommissionSplit) -> str:
        return f"USDT TRC20 deposit - Commission: {format_amount(split.commission)} USDT"

    try:
        result = settle_deposit(
            db,
            user_id=user_id,
            currency_type=CURRENCY,
            gross=amount,
            source=TransactionSource.COINPAYMENTS_DEPOSIT.value,
            reference_id=txn_id,
            description=describe,
            fee=fee,
        )
    except ValidationError as e:
        logger.warning(f"Dropping IPN {txn_id}: {e.message}")
        return e.message

    return "Duplicate IPN" if result.duplicate else "IPN processed"


def _process_withdrawal_ipn(db: Session, data: Dict[str, str], status_code: int) -> str:
    withdrawal_id = data.get("id")
    if not withdrawal_id:
        return "Missing withdrawal id"
    if status_code < WITHDRAWAL_STATUS_COMPLETE:
        return "Withdrawal pending"

    transaction = mark_completed(db, TransactionSource.COINPAYMENTS_WITHDRAWAL.value, withdrawal_id)
    if transaction is None:
        logger.warning(f"Withdrawal IPN for unknown withdrawal {withdrawal_id}")
        return "Unknown withdrawal"
    return "Withdrawal confirmed"


def withdraw(
    db: Session,
    coinpayments: CoinPaymentsClient,
    user_id: Optional[str],
    amount: Optional[float],
    wallet_address: Optional[str],
) -> SettlementResult:
    """Withdraw from the user's USDT wallet to an external TRC20 address"""
    user_id = require(user_id, "Missing required fields: userId", "MISSING_USER_ID")
    wallet_address = require(wallet_address, "Missing required fields: walletAddress", "MISSING_WALLET_ADDRESS")
    amount = require_positive_amount(amount)

    def send(split: CommissionSplit):
        result = coinpayments.create_withdrawal(
            wallet_address,
            split.net,
            f"TaskInn payout - Net amount after {split.rate * 100:.0f}% commission",
        )
        return result.withdrawal_id, result.status, withdrawal_completed(result.status)

    def describe(split: CommissionSplit) -> str:
        return (
            f"USDT TRC20 withdrawal to {wallet_address[:10]}... - "
            f"Commission: {format_amount(split.commission)} USDT"
        )

    return settle_withdrawal(
        db,
        user_id=user_id,
        currency_type=CURRENCY,
        gross=amount,
        source=TransactionSource.COINPAYMENTS_WITHDRAWAL.value,
        send=send,
        description=describe,
    )


def withdrawal_completed(status: str) -> bool:
    """Immediate status from create_withdrawal: 1 means sent with auto_confirm"""
    return status in ("1", "Complete")


def withdrawal_info_completed(info: CryptoWithdrawalInfo) -> bool:
    return info.status == str(WITHDRAWAL_STATUS_COMPLETE) or info.status_text == "Complete"


def refresh_withdrawal_status(
    db: Session, coinpayments: CoinPaymentsClient, withdrawal_id: str
) -> tuple[CryptoWithdrawalInfo, Optional[str]]:
    info = coinpayments.get_withdrawal_info(withdrawal_id)
    source = TransactionSource.COINPAYMENTS_WITHDRAWAL.value

    if withdrawal_info_completed(info):
        transaction = mark_completed(db, source, withdrawal_id)
    else:
        transaction = find_transaction(db, source, withdrawal_id)

    return info, transaction.status if transaction is not None else None

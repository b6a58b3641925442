"""
CoinPayments Router
USDT (TRC20) deposit addresses, the IPN callback and crypto withdrawals
"""

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session
from typing import Optional

from taskinn.core.coinpayments_client import CoinPaymentsClient, get_coinpayments_client
from taskinn.core.config import settings
from taskinn.core.database import get_db
from taskinn.core.rate_limit import limiter
from taskinn.schemas.payment_schemas import (
    CreateAddressRequest,
    CreateAddressResponse,
    CryptoWithdrawRequest,
    IPNAcknowledgement,
    WithdrawalResponse,
    WithdrawalSummary,
    ProcessorStatusResponse,
)
from taskinn.services import coinpayments_service

router = APIRouter()


@router.post("/create-address", response_model=CreateAddressResponse)
def create_address(
    payload: CreateAddressRequest,
    coinpayments: CoinPaymentsClient = Depends(get_coinpayments_client),
):
    """Issue a TRC20 deposit address whose IPNs credit the given user"""
    address = coinpayments_service.create_deposit_address(coinpayments, payload.user_id)
    return CreateAddressResponse(address=address.address, pubkey=address.pubkey, dest_tag=address.dest_tag)


@router.post("/ipn", response_model=IPNAcknowledgement)
async def coinpayments_ipn(
    request: Request,
    hmac_header: Optional[str] = Header(None, alias="HMAC"),
    db: Session = Depends(get_db),
):
    """
    Instant Payment Notification callback

    The HMAC header must be the HMAC-SHA512 of the raw form body keyed with
    the IPN secret. Anything that passes the signature check is acknowledged
    with success so that CoinPayments stops retrying.
    """
    # Signature is computed over the exact bytes received
    body = await request.body()
    message = coinpayments_service.process_ipn(db, body, hmac_header)
    return IPNAcknowledgement(message=message)


@router.post("/withdraw", response_model=WithdrawalResponse, response_model_exclude_none=True)
@limiter.limit(settings.WITHDRAWAL_RATE_LIMIT)
def withdraw(
    request: Request,
    payload: CryptoWithdrawRequest,
    db: Session = Depends(get_db),
    coinpayments: CoinPaymentsClient = Depends(get_coinpayments_client),
):
    """Send the net amount to a TRC20 address; the wallet is debited the full amount"""
    result = coinpayments_service.withdraw(db, coinpayments, payload.user_id, payload.amount, payload.wallet_address)
    return WithdrawalResponse(
        withdrawal=WithdrawalSummary(
            amount=result.split.gross,
            commission=result.split.commission,
            net_amount=result.split.net,
            withdrawal_id=result.reference_id,
            status=result.status,
        )
    )


@router.get("/withdrawal/{withdrawal_id}", response_model=ProcessorStatusResponse, response_model_exclude_none=True)
def get_withdrawal_status(
    withdrawal_id: str,
    db: Session = Depends(get_db),
    coinpayments: CoinPaymentsClient = Depends(get_coinpayments_client),
):
    info, local_status = coinpayments_service.refresh_withdrawal_status(db, coinpayments, withdrawal_id)
    return ProcessorStatusResponse(
        reference_id=info.withdrawal_id,
        status=info.status_text or info.status,
        local_status=local_status,
    )

"""
PayPal Router
Deposits through PayPal Checkout orders and withdrawals through Payouts
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from taskinn.core.config import settings
from taskinn.core.database import get_db
from taskinn.core.paypal_client import PayPalClient, get_paypal_client
from taskinn.core.rate_limit import limiter
from taskinn.schemas.payment_schemas import (
    CreateOrderRequest,
    CreateOrderResponse,
    CaptureOrderRequest,
    CaptureOrderResponse,
    DepositSummary,
    PayoutRequest,
    WithdrawalResponse,
    WithdrawalSummary,
    ProcessorStatusResponse,
)
from taskinn.services import paypal_service

router = APIRouter()


@router.post("/create-order", response_model=CreateOrderResponse)
def create_order(payload: CreateOrderRequest, paypal: PayPalClient = Depends(get_paypal_client)):
    """Start a deposit; the user approves the order at approvalUrl"""
    order = paypal_service.create_order(paypal, payload.amount)
    return CreateOrderResponse(order_id=order.order_id, approval_url=order.approval_url)


@router.post("/capture-order", response_model=CaptureOrderResponse)
def capture_order(
    payload: CaptureOrderRequest,
    db: Session = Depends(get_db),
    paypal: PayPalClient = Depends(get_paypal_client),
):
    """Capture an approved order and credit the user's USD wallet"""
    result = paypal_service.capture_order(db, paypal, payload.order_id, payload.user_id)
    return CaptureOrderResponse(
        deposit=DepositSummary(
            deposited_amount=result.split.gross,
            commission_amount=result.split.commission,
            net_amount=result.split.net,
            capture_id=result.reference_id,
        ),
        duplicate=result.duplicate,
    )


@router.post("/payout", response_model=WithdrawalResponse, response_model_exclude_none=True)
@limiter.limit(settings.WITHDRAWAL_RATE_LIMIT)
def payout(
    request: Request,
    payload: PayoutRequest,
    db: Session = Depends(get_db),
    paypal: PayPalClient = Depends(get_paypal_client),
):
    """Send the net amount to a PayPal account; the wallet is debited the full amount"""
    result = paypal_service.payout(db, paypal, payload.user_id, payload.amount, payload.paypal_email)
    return WithdrawalResponse(
        withdrawal=WithdrawalSummary(
            amount=result.split.gross,
            commission=result.split.commission,
            net_amount=result.split.net,
            batch_id=result.reference_id,
            status=result.status,
        )
    )


@router.get("/payout/{batch_id}", response_model=ProcessorStatusResponse, response_model_exclude_none=True)
def get_payout_status(
    batch_id: str,
    db: Session = Depends(get_db),
    paypal: PayPalClient = Depends(get_paypal_client),
):
    result, local_status = paypal_service.refresh_payout_status(db, paypal, batch_id)
    return ProcessorStatusResponse(reference_id=result.batch_id, status=result.status, local_status=local_status)

from pydantic import Field, EmailStr
from typing import Optional, Any
from datetime import datetime

from taskinn.schemas.common import CamelModel


# ============================================================================
# PayPal
# ============================================================================

class CreateOrderRequest(CamelModel):
    amount: Optional[float] = Field(None, description="Deposit amount in USD")


class CreateOrderResponse(CamelModel):
    success: bool = True
    order_id: str
    approval_url: Optional[str] = None


class CaptureOrderRequest(CamelModel):
    order_id: Optional[str] = None
    user_id: Optional[str] = None


class DepositSummary(CamelModel):
    deposited_amount: float
    commission_amount: float
    net_amount: float
    capture_id: str


class CaptureOrderResponse(CamelModel):
    success: bool = True
    deposit: DepositSummary
    duplicate: bool = False


class PayoutRequest(CamelModel):
    user_id: Optional[str] = None
    amount: Optional[float] = None
    paypal_email: Optional[EmailStr] = None


class WithdrawalSummary(CamelModel):
    amount: float
    commission: float
    net_amount: float
    batch_id: Optional[str] = None
    withdrawal_id: Optional[str] = None
    status: Optional[str] = None


class WithdrawalResponse(CamelModel):
    success: bool = True
    withdrawal: WithdrawalSummary


class ProcessorStatusResponse(CamelModel):
    success: bool = True
    reference_id: str
    status: str
    local_status: Optional[str] = None


# ============================================================================
# CoinPayments
# ============================================================================

class CreateAddressRequest(CamelModel):
    user_id: Optional[str] = None


class CreateAddressResponse(CamelModel):
    success: bool = True
    address: str
    pubkey: Optional[str] = None
    dest_tag: Optional[str] = None


class CryptoWithdrawRequest(CamelModel):
    user_id: Optional[str] = None
    amount: Optional[float] = None
    wallet_address: Optional[str] = None


class IPNAcknowledgement(CamelModel):
    success: bool = True
    message: str


# ============================================================================
# Withdrawal requests / stats
# ============================================================================

class WithdrawalRequestCreate(CamelModel):
    amount: Optional[float] = None
    payment_method: Optional[str] = None
    payment_address: Optional[str] = None
    currency: Optional[str] = None
    notes: Optional[str] = None
    user_id: Optional[Any] = None


class PaymentResponse(CamelModel):
    id: int
    user_id: str
    task_submission_id: Optional[int] = None
    amount: float
    currency: str
    payment_type: str
    status: str
    payment_method: Optional[str] = None
    payment_address: Optional[str] = None
    transaction_hash: Optional[str] = None
    notes: Optional[str] = None
    commission_amount: Optional[float] = None
    created_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None


class PaymentStatsResponse(CamelModel):
    user_id: str
    total_earnings: float
    total_withdrawals: float
    pending_earnings: float
    pending_withdrawals: float
    available_balance: float
    total_transactions: int

from pydantic import Field
from typing import Any, List, Optional
from datetime import datetime

from taskinn.schemas.common import CamelModel


# ============================================================================
# Requests
# ============================================================================

class CreateWalletRequest(CamelModel):
    currency_type: Optional[str] = Field(None, description="USD or USDT_TRC20")
    user_id: Optional[Any] = Field(None, description="Rejected: the owner comes from the session")


class AddFundsRequest(CamelModel):
    user_id: Optional[str] = None
    currency_type: Optional[str] = None
    amount: Optional[float] = None


class TransferRequest(CamelModel):
    from_wallet_id: Optional[int] = None
    to_wallet_id: Optional[int] = None
    amount: Optional[float] = None
    task_id: Optional[int] = None
    submission_id: Optional[int] = None


# ============================================================================
# Responses
# ============================================================================

class WalletResponse(CamelModel):
    id: int
    user_id: str
    currency_type: str
    balance: float
    total_earned: float
    total_withdrawn: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WalletTransactionResponse(CamelModel):
    id: int
    wallet_id: int
    transaction_type: str
    amount: float
    currency_type: str
    status: str
    source: str
    reference_id: Optional[str] = None
    commission_amount: Optional[float] = None
    description: Optional[str] = None
    transaction_hash: Optional[str] = None
    created_at: Optional[datetime] = None


class TransferResponse(CamelModel):
    success: bool = True
    from_wallet: WalletResponse
    to_wallet: WalletResponse
    from_transaction: WalletTransactionResponse
    to_transaction: WalletTransactionResponse


class DepositRequest(CamelModel):
    amount: Optional[float] = None
    currency_type: Optional[str] = None
    transaction_hash: Optional[str] = None
    notes: Optional[str] = None
    user_id: Optional[Any] = Field(None, description="Rejected: the owner comes from the session")


class DepositSummary(CamelModel):
    transaction_id: int
    amount: float
    currency_type: str
    new_balance: float
    created_at: Optional[datetime] = None
    transaction_hash: Optional[str] = None


class DepositResponse(CamelModel):
    success: bool = True
    deposit: DepositSummary


class WalletWithdrawRequest(CamelModel):
    amount: Optional[float] = None
    currency_type: Optional[str] = None
    payment_method: Optional[str] = None
    payment_address: Optional[str] = None
    notes: Optional[str] = None


class WalletWithdrawalSummary(CamelModel):
    transaction_id: int
    amount: float
    commission: float
    net_amount: float
    commission_rate: float
    currency_type: str
    payment_method: str
    payment_address: str
    previous_balance: float
    new_balance: float
    status: str
    created_at: Optional[datetime] = None


class WalletWithdrawResponse(CamelModel):
    success: bool = True
    withdrawal: WalletWithdrawalSummary


# ============================================================================
# Worker earnings
# ============================================================================

class EarningsSummary(CamelModel):
    total_earnings: float
    available_balance: float
    this_month_earnings: float
    total_withdrawn: float


class EarningsEntry(CamelModel):
    id: int
    type: str
    amount: float
    currency_type: str
    status: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class EarningsData(CamelModel):
    summary: EarningsSummary
    transactions: List[EarningsEntry]


class EarningsResponse(CamelModel):
    success: bool = True
    data: EarningsData

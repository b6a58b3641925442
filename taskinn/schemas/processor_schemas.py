"""
Normalized results returned by the payment processor clients
The routers and settlement services never see raw processor payloads.
"""

from pydantic import BaseModel
from typing import Optional, Dict, Any


class PayPalOrder(BaseModel):
    order_id: str
    approval_url: Optional[str] = None


class PayPalCapture(BaseModel):
    capture_id: str
    status: str
    amount: float
    currency: str = "USD"


class PayPalPayout(BaseModel):
    batch_id: str
    status: str  # PENDING, PROCESSING, SUCCESS, DENIED, ...


class CryptoDepositAddress(BaseModel):
    address: str
    pubkey: Optional[str] = None
    dest_tag: Optional[str] = None


class CryptoWithdrawal(BaseModel):
    withdrawal_id: str
    status: str  # 0 pending email confirmation, 1 sent, "Complete" once confirmed
    amount: Optional[float] = None


class CryptoWithdrawalInfo(BaseModel):
    withdrawal_id: str
    status: str
    status_text: Optional[str] = None
    amount: Optional[float] = None
    raw: Dict[str, Any] = {}

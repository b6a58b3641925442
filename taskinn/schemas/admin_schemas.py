from pydantic import EmailStr
from typing import Optional, List
from datetime import datetime

from taskinn.schemas.common import CamelModel


class AdminSettingsResponse(CamelModel):
    """Admin settings without the password hash"""
    id: int
    commission_rate: float
    admin_username: str
    admin_email: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AdminSettingsUpdate(CamelModel):
    username: Optional[str] = None
    password: Optional[str] = None
    commission_rate: Optional[float] = None
    email: Optional[EmailStr] = None


class AdminWalletInfo(CamelModel):
    currency_type: str
    balance: float
    total_earned: float
    total_withdrawn: float
    updated_at: Optional[datetime] = None


class AdminWalletStatsResponse(CamelModel):
    success: bool = True
    commission_rate: float
    wallets: List[AdminWalletInfo]


class AdminWithdrawRequest(CamelModel):
    currency_type: Optional[str] = "USD"
    amount: Optional[float] = None
    payment_method: Optional[str] = None
    payment_address: Optional[str] = None
    notes: Optional[str] = None


class AdminWithdrawalSummary(CamelModel):
    currency_type: str
    amount: float
    payment_method: str
    payment_address: str
    notes: Optional[str] = None
    previous_balance: float
    new_balance: float
    created_at: datetime


class AdminWithdrawResponse(CamelModel):
    success: bool = True
    withdrawal: AdminWithdrawalSummary

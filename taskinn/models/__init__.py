from .wallet import (
    Wallet, WalletTransaction, CurrencyType,
    TransactionType, TransactionStatus, TransactionSource,
)
from .admin import AdminWallet, AdminSettings
from .payment import Payment, PaymentType, PaymentStatus, PaymentMethod

__all__ = [
    "Wallet", "WalletTransaction", "CurrencyType",
    "TransactionType", "TransactionStatus", "TransactionSource",
    "AdminWallet", "AdminSettings",
    "Payment", "PaymentType", "PaymentStatus", "PaymentMethod",
]

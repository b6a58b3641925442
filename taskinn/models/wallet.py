from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from taskinn.core.database import Base
import enum


class CurrencyType(str, enum.Enum):
    USD = "USD"
    USDT_TRC20 = "USDT_TRC20"


class TransactionType(str, enum.Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TASK_PAYMENT = "task_payment"


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class TransactionSource(str, enum.Enum):
    """Settlement path that produced a ledger entry"""
    PAYPAL_CAPTURE = "paypal_capture"
    PAYPAL_PAYOUT = "paypal_payout"
    COINPAYMENTS_DEPOSIT = "coinpayments_deposit"
    COINPAYMENTS_WITHDRAWAL = "coinpayments_withdrawal"
    MANUAL = "manual"
    TRANSFER = "transfer"


class Wallet(Base):
    __tablename__ = "wallets"
    __table_args__ = (
        UniqueConstraint("user_id", "currency_type", name="uq_wallets_user_currency"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)  # Issued by the auth layer
    currency_type = Column(String, nullable=False)  # USD, USDT_TRC20
    balance = Column(Float, nullable=False, default=0.0)
    total_earned = Column(Float, nullable=False, default=0.0)  # Sum of all credits
    total_withdrawn = Column(Float, nullable=False, default=0.0)  # Sum of all debits
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    transactions = relationship("WalletTransaction", back_populates="wallet", lazy="dynamic")

    def __repr__(self):
        return f"<Wallet(id={self.id}, user_id='{self.user_id}', currency='{self.currency_type}', balance={self.balance})>"


class WalletTransaction(Base):
    """Append-only ledger entry; only `status` moves, from pending to completed"""
    __tablename__ = "wallet_transactions"
    __table_args__ = (
        UniqueConstraint("source", "reference_id", name="uq_wallet_transactions_source_reference"),
    )

    id = Column(Integer, primary_key=True, index=True)
    wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=False, index=True)
    transaction_type = Column(String, nullable=False)  # deposit, withdrawal, task_payment
    amount = Column(Float, nullable=False)  # Negative for money leaving the wallet
    currency_type = Column(String, nullable=False)
    status = Column(String, nullable=False, default=TransactionStatus.PENDING.value)
    source = Column(String, nullable=False)
    reference_id = Column(String, nullable=True, index=True)  # Processor capture/batch/txn id
    commission_amount = Column(Float, nullable=True)
    description = Column(Text, nullable=True)
    transaction_hash = Column(String, nullable=True)  # On-chain hash reported with a manual deposit
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    wallet = relationship("Wallet", back_populates="transactions")

    def __repr__(self):
        return f"<WalletTransaction(id={self.id}, type='{self.transaction_type}', amount={self.amount}, ref='{self.reference_id}')>"

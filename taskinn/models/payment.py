from sqlalchemy import Column, Integer, String, Float, DateTime, Text
from sqlalchemy.sql import func
from taskinn.core.database import Base
import enum


class PaymentType(str, enum.Enum):
    EARNING = "earning"
    BONUS = "bonus"
    REFERRAL = "referral"
    WITHDRAWAL = "withdrawal"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class PaymentMethod(str, enum.Enum):
    BANK = "bank"
    PAYPAL = "paypal"
    CRYPTO_WALLET = "crypto_wallet"


# Payment types that add to a worker's available balance
EARNING_TYPES = (PaymentType.EARNING.value, PaymentType.BONUS.value, PaymentType.REFERRAL.value)


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    task_submission_id = Column(Integer, nullable=True)
    amount = Column(Float, nullable=False)
    currency = Column(String, nullable=False, default="USD")
    payment_type = Column(String, nullable=False)  # earning, bonus, referral, withdrawal
    status = Column(String, nullable=False, default=PaymentStatus.PENDING.value)
    payment_method = Column(String, nullable=True)  # bank, paypal, crypto_wallet
    payment_address = Column(String, nullable=True)
    transaction_hash = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    commission_amount = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    processed_at = Column(DateTime(timezone=True), nullable=True)

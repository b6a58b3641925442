"""
Platform-side ledger models
AdminWallet accumulates commission per currency; AdminSettings is the
singleton holding the commission rate and the admin credentials.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime
from sqlalchemy.sql import func
from taskinn.core.database import Base


class AdminWallet(Base):
    __tablename__ = "admin_wallets"

    id = Column(Integer, primary_key=True, index=True)
    currency_type = Column(String, nullable=False, unique=True)
    balance = Column(Float, nullable=False, default=0.0)
    total_earned = Column(Float, nullable=False, default=0.0)  # Sum of commissions
    total_withdrawn = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<AdminWallet(currency='{self.currency_type}', balance={self.balance})>"


class AdminSettings(Base):
    __tablename__ = "admin_settings"

    id = Column(Integer, primary_key=True, index=True)
    commission_rate = Column(Float, nullable=False, default=0.05)  # Fraction, 0.05 == 5%
    admin_username = Column(String, nullable=False, default="admin")
    admin_password_hash = Column(String, nullable=False)
    admin_email = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

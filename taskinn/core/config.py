from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import Optional, List
import logging


class Settings(BaseSettings):
    # -------------------------
    # Application Info
    # -------------------------
    APP_NAME: str = "TaskInn Payments API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True
    APP_URL: str = "http://localhost:3000"

    # -------------------------
    # Logging
    # -------------------------
    LOG_LEVEL: str = "INFO"

    # -------------------------
    # Database
    # -------------------------
    DATABASE_URL: str = "sqlite:///./taskinn.db"

    # -------------------------
    # Commission / Withdrawals
    # -------------------------
    DEFAULT_COMMISSION_RATE: float = 0.05
    MIN_WITHDRAWAL_AMOUNT: float = 5.0
    MIN_DEPOSIT_AMOUNT: float = 5.0
    WITHDRAWAL_RATE_LIMIT: str = "10/minute"

    # -------------------------
    # Payment processors
    # -------------------------
    PROCESSOR_TIMEOUT_SECONDS: float = 30.0

    PAYPAL_CLIENT_ID: Optional[str] = None
    PAYPAL_CLIENT_SECRET: Optional[str] = None
    PAYPAL_MODE: str = "sandbox"  # "sandbox" or "live"
    PAYPAL_BASE_URL: Optional[str] = None  # overrides the mode-derived URL

    COINPAYMENTS_API_URL: str = "https://www.coinpayments.net/api.php"
    COINPAYMENTS_PUBLIC_KEY: Optional[str] = None
    COINPAYMENTS_PRIVATE_KEY: Optional[str] = None
    COINPAYMENTS_IPN_SECRET: Optional[str] = None  # falls back to the private key
    COINPAYMENTS_MERCHANT_ID: Optional[str] = None
    COINPAYMENTS_CURRENCY: str = "USDT.TRC20"
    COINPAYMENTS_LABEL_PREFIX: str = "TaskInn-"

    # -------------------------
    # CORS
    # -------------------------
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:3001",
    ]

    @field_validator('DEFAULT_COMMISSION_RATE')
    @classmethod
    def validate_commission_rate(cls, v):
        if v < 0 or v >= 1:
            raise ValueError("DEFAULT_COMMISSION_RATE must be at least 0 and below 1")
        return v

    @field_validator('PAYPAL_MODE')
    @classmethod
    def validate_paypal_mode(cls, v):
        if v not in ("sandbox", "live"):
            raise ValueError("PAYPAL_MODE must be 'sandbox' or 'live'")
        return v

    @property
    def paypal_api_base(self) -> str:
        if self.PAYPAL_BASE_URL:
            return self.PAYPAL_BASE_URL.rstrip("/")
        if self.PAYPAL_MODE == "live":
            return "https://api-m.paypal.com"
        return "https://api-m.sandbox.paypal.com"

    @property
    def coinpayments_ipn_secret(self) -> Optional[str]:
        return self.COINPAYMENTS_IPN_SECRET or self.COINPAYMENTS_PRIVATE_KEY

    def validate_production_config(self):
        """Validate configuration for production deployment"""
        logger = logging.getLogger(__name__)

        if not self.DEBUG:
            warnings = []

            if not self.PAYPAL_CLIENT_ID or not self.PAYPAL_CLIENT_SECRET:
                warnings.append("PayPal credentials not set - PayPal deposits and payouts will fail")

            if not self.COINPAYMENTS_PUBLIC_KEY or not self.COINPAYMENTS_PRIVATE_KEY:
                warnings.append("CoinPayments credentials not set - crypto deposits and withdrawals will fail")

            if not self.coinpayments_ipn_secret:
                warnings.append("COINPAYMENTS_IPN_SECRET not set - every IPN will be rejected")

            if self.DATABASE_URL.startswith("sqlite"):
                warnings.append("SQLite database in production - row locking is not available")

            for warning in warnings:
                logger.warning(f"Production config warning: {warning}")

    class Config:
        env_file = ".env"
        extra = "ignore"  # ignore extra env vars not defined here


# Create a settings instance
settings = Settings()

# Validate production configuration
settings.validate_production_config()

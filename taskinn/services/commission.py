"""
Commission Policy
Splits a gross movement into platform commission and the net amount that
reaches (or leaves for) the user.
"""

import logging
import math
from pydantic import BaseModel
from sqlalchemy.orm import Session

from taskinn.core.config import settings
from taskinn.models.admin import AdminSettings

logger = logging.getLogger(__name__)


class CommissionSplit(BaseModel):
    gross: float
    rate: float
    commission: float
    fee: float = 0.0
    net: float


def get_commission_rate(db: Session) -> float:
    """
    Current platform commission rate

    Read on every settlement so that a rate change takes effect on the next
    request without a redeploy. Falls back to DEFAULT_COMMISSION_RATE when
    no admin settings row exists yet.
    """
    admin_settings = db.query(AdminSettings).order_by(AdminSettings.id).first()
    if admin_settings is None or admin_settings.commission_rate is None:
        return settings.DEFAULT_COMMISSION_RATE
    return float(admin_settings.commission_rate)


def compute_split(gross: float, rate: float, fee: float = 0.0) -> CommissionSplit:
    """
    commission = gross * rate
    net = gross - commission - fee

    Values keep full float precision; rounding is a display concern.
    """
    if not math.isfinite(gross) or gross <= 0:
        raise ValueError(f"Gross amount must be positive, got {gross}")
    if not math.isfinite(rate) or rate < 0 or rate >= 1:
        raise ValueError(f"Commission rate must be at least 0 and below 1, got {rate}")
    if not math.isfinite(fee) or fee < 0:
        raise ValueError(f"Processor fee cannot be negative, got {fee}")

    commission = gross * rate
    net = gross - commission - fee
    return CommissionSplit(gross=gross, rate=rate, commission=commission, fee=fee, net=net)


def format_amount(amount: float) -> str:
    return f"{amount:.2f}"

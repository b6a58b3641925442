import math
from typing import Any, Optional

from taskinn.core.exceptions import ValidationError
from taskinn.models.wallet import CurrencyType


def require(value: Any, message: str, code: str) -> Any:
    """Reject missing or blank values"""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(message, code=code)
    return value.strip() if isinstance(value, str) else value


def require_positive_amount(amount: Optional[float], code: str = "INVALID_AMOUNT") -> float:
    if amount is None:
        raise ValidationError("Amount is required", code="MISSING_AMOUNT")
    if not math.isfinite(amount) or amount <= 0:
        raise ValidationError("Amount must be a positive number", code=code)
    return float(amount)


def require_currency(currency_type: Optional[str]) -> str:
    if not currency_type:
        raise ValidationError("Currency type is required", code="MISSING_CURRENCY_TYPE")
    allowed = [c.value for c in CurrencyType]
    if currency_type not in allowed:
        raise ValidationError(
            f"Currency type must be one of: {', '.join(allowed)}",
            code="INVALID_CURRENCY_TYPE",
        )
    return currency_type

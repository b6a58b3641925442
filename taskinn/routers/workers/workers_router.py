"""
Workers Router
Earnings summary and history for the current worker
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from taskinn.core.database import get_db
from taskinn.core.dependencies import get_current_user_id
from taskinn.core.exceptions import AuthorizationError, ValidationError
from taskinn.models.wallet import CurrencyType
from taskinn.schemas.wallet_schemas import EarningsResponse
from taskinn.services import earnings_service
from taskinn.services.ledger import DEFAULT_PAGE_SIZE
from taskinn.utils.validation import require_currency

router = APIRouter()


@router.get("/earnings", response_model=EarningsResponse)
def get_earnings(
    user_id: Optional[str] = Query(None, alias="userId"),
    currency_type: str = Query(CurrencyType.USD.value, alias="currencyType"),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    offset: int = Query(0),
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Totals of completed task payments plus the task payment and withdrawal history"""
    if not user_id:
        raise ValidationError("User ID is required", code="MISSING_USER_ID")
    if user_id != current_user_id:
        raise AuthorizationError("Unauthorized access to earnings data", code="UNAUTHORIZED_ACCESS")

    currency_type = require_currency(currency_type)
    data = earnings_service.get_worker_earnings(db, current_user_id, currency_type, limit=limit, offset=offset)
    return EarningsResponse(data=data)

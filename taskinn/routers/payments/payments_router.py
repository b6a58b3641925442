"""
Payments Router
Worker withdrawal requests, payment history and earnings statistics
"""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session
from typing import List, Optional

from taskinn.core.config import settings
from taskinn.core.database import get_db
from taskinn.core.dependencies import get_current_user_id
from taskinn.core.exceptions import AuthorizationError, ValidationError
from taskinn.core.rate_limit import limiter
from taskinn.schemas.payment_schemas import PaymentResponse, PaymentStatsResponse, WithdrawalRequestCreate
from taskinn.services import payment_service

router = APIRouter()


@router.post("/withdraw", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.WITHDRAWAL_RATE_LIMIT)
def request_withdrawal(
    request: Request,
    payload: WithdrawalRequestCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Queue a withdrawal of earnings for the authenticated worker"""
    if "user_id" in payload.model_fields_set:
        raise ValidationError("User ID cannot be provided in request body", code="USER_ID_NOT_ALLOWED")

    return payment_service.create_withdrawal_request(
        db,
        user_id,
        payload.amount,
        payload.payment_method,
        payload.payment_address,
        currency=payload.currency,
        notes=payload.notes,
    )


@router.get("/stats", response_model=PaymentStatsResponse)
def get_payment_stats(
    user_id: Optional[str] = Query(None, alias="userId"),
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    if not user_id:
        raise ValidationError("userId is required", code="MISSING_USER_ID")
    if user_id != current_user_id:
        raise AuthorizationError("You can only view your own payment stats")
    return payment_service.get_payment_stats(db, current_user_id)


@router.get("", response_model=List[PaymentResponse])
def list_payments(
    limit: int = Query(20, ge=1),
    offset: int = Query(0, ge=0),
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return payment_service.list_payments(db, current_user_id, limit=limit, offset=offset)

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session
from typing import List, Optional

from taskinn.core.config import settings
from taskinn.core.database import get_db
from taskinn.core.dependencies import get_current_user_id
from taskinn.core.exceptions import AuthorizationError, ValidationError
from taskinn.core.rate_limit import limiter
from taskinn.schemas.wallet_schemas import (
    CreateWalletRequest,
    AddFundsRequest,
    DepositRequest,
    DepositResponse,
    DepositSummary,
    WalletWithdrawRequest,
    WalletWithdrawResponse,
    WalletWithdrawalSummary,
    TransferRequest,
    TransferResponse,
    WalletResponse,
    WalletTransactionResponse,
)
from taskinn.services import wallet_service, wallet_operations
from taskinn.services.ledger import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, get_transaction, list_transactions
from taskinn.utils.validation import require_currency


router = APIRouter()


@router.get("", response_model=List[WalletResponse])
def get_user_wallets(
    user_id: Optional[str] = Query(None, alias="userId"),
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Get all wallets for the current user"""
    if not user_id:
        raise ValidationError("userId parameter is required", code="MISSING_USER_ID")
    if user_id != current_user_id:
        raise AuthorizationError("You can only view your own wallets")
    return wallet_service.list_wallets(db, current_user_id)


@router.post("", response_model=WalletResponse, status_code=status.HTTP_201_CREATED)
def create_wallet(
    payload: CreateWalletRequest,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Open an empty wallet in the given currency for the current user"""
    if "user_id" in payload.model_fields_set:
        raise ValidationError("User ID cannot be provided in request body", code="USER_ID_NOT_ALLOWED")

    currency_type = require_currency(payload.currency_type)
    return wallet_service.create_wallet(db, current_user_id, currency_type)


@router.post("/add-funds", response_model=WalletResponse)
def add_funds(payload: AddFundsRequest, db: Session = Depends(get_db)):
    return wallet_operations.add_funds(db, payload.user_id, payload.currency_type, payload.amount)


@router.post("/deposit", response_model=DepositResponse, response_model_exclude_none=True)
def deposit(
    payload: DepositRequest,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Credit a deposit reported by the current user, without commission"""
    if "user_id" in payload.model_fields_set:
        raise ValidationError("User ID cannot be provided in request body", code="USER_ID_NOT_ALLOWED")

    wallet, transaction = wallet_operations.deposit(
        db,
        current_user_id,
        payload.currency_type,
        payload.amount,
        transaction_hash=payload.transaction_hash,
        notes=payload.notes,
    )
    return DepositResponse(
        deposit=DepositSummary(
            transaction_id=transaction.id,
            amount=transaction.amount,
            currency_type=transaction.currency_type,
            new_balance=wallet.balance,
            created_at=transaction.created_at,
            transaction_hash=transaction.transaction_hash,
        )
    )


@router.post("/withdraw", response_model=WalletWithdrawResponse)
@limiter.limit(settings.WITHDRAWAL_RATE_LIMIT)
def withdraw(
    request: Request,
    payload: WalletWithdrawRequest,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Withdraw from one of the current user's wallets; commission goes to the platform"""
    result, previous_balance, wallet = wallet_operations.withdraw_to_address(
        db,
        current_user_id,
        payload.amount,
        payload.currency_type,
        payload.payment_method,
        payload.payment_address,
        notes=payload.notes,
    )
    transaction = get_transaction(db, result.transaction_id)
    return WalletWithdrawResponse(
        withdrawal=WalletWithdrawalSummary(
            transaction_id=result.transaction_id,
            amount=result.split.gross,
            commission=round(result.split.commission, 2),
            net_amount=round(result.split.net, 2),
            commission_rate=result.split.rate,
            currency_type=result.currency_type,
            payment_method=payload.payment_method.strip(),
            payment_address=payload.payment_address.strip(),
            previous_balance=previous_balance,
            new_balance=wallet.balance,
            status=result.status,
            created_at=transaction.created_at,
        )
    )


@router.get("/transactions", response_model=List[WalletTransactionResponse])
def get_wallet_transactions(
    wallet_id: Optional[str] = Query(None, alias="walletId"),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    offset: int = Query(0),
    db: Session = Depends(get_db),
):
    """Ledger entries of one wallet, newest first"""
    if not wallet_id:
        raise ValidationError("Wallet ID is required", code="MISSING_WALLET_ID")
    try:
        parsed_wallet_id = int(wallet_id)
    except ValueError:
        raise ValidationError("Valid wallet ID is required", code="INVALID_WALLET_ID")

    return list_transactions(db, parsed_wallet_id, limit=min(limit, MAX_PAGE_SIZE), offset=offset)


@router.post("/transfer", response_model=TransferResponse)
def transfer(
    payload: TransferRequest,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Pay for a task from one of the caller's wallets into another wallet"""
    from_wallet, to_wallet, debit, credit = wallet_operations.transfer(
        db,
        current_user_id,
        payload.from_wallet_id,
        payload.to_wallet_id,
        payload.amount,
        task_id=payload.task_id,
        submission_id=payload.submission_id,
    )
    return TransferResponse(
        from_wallet=WalletResponse.model_validate(from_wallet),
        to_wallet=WalletResponse.model_validate(to_wallet),
        from_transaction=WalletTransactionResponse.model_validate(debit),
        to_transaction=WalletTransactionResponse.model_validate(credit),
    )

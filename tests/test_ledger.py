import pytest

from taskinn.core.database import atomic
from taskinn.core.exceptions import (
    ConflictError,
    DuplicateTransactionError,
    InsufficientBalanceError,
    NotFoundError,
)
from taskinn.models.admin import AdminWallet
from taskinn.models.wallet import TransactionSource, TransactionStatus, TransactionType
from taskinn.services.admin_wallet_service import credit_commission, withdraw_commission
from taskinn.services.ledger import find_transaction, list_transactions, mark_completed, record_transaction
from taskinn.services.wallet_service import apply_delta, create_wallet, get_wallet, get_wallet_by_id


def test_first_credit_opens_wallet(db_session):
    with atomic(db_session):
        wallet = apply_delta(db_session, "user-1", "USD", 25.0)

    assert wallet.balance == pytest.approx(25.0)
    assert wallet.total_earned == pytest.approx(25.0)
    assert wallet.total_withdrawn == 0.0


def test_serial_credits_accumulate(db_session):
    for amount in (10.0, 20.0, 30.5):
        with atomic(db_session):
            apply_delta(db_session, "user-1", "USD", amount)

    wallet = get_wallet(db_session, "user-1", "USD")
    assert wallet.balance == pytest.approx(60.5)
    assert wallet.total_earned == pytest.approx(60.5)


def test_debit_updates_totals(db_session):
    with atomic(db_session):
        apply_delta(db_session, "user-1", "USD", 40.0)
    with atomic(db_session):
        wallet = apply_delta(db_session, "user-1", "USD", -15.0)

    assert wallet.balance == pytest.approx(25.0)
    assert wallet.total_withdrawn == pytest.approx(15.0)


def test_debit_of_missing_wallet_is_insufficient(db_session):
    with pytest.raises(InsufficientBalanceError):
        apply_delta(db_session, "nobody", "USD", -1.0)


def test_overdraw_is_rejected_and_balance_untouched(db_session):
    with atomic(db_session):
        apply_delta(db_session, "user-1", "USD", 3.0)

    with pytest.raises(InsufficientBalanceError):
        with atomic(db_session):
            apply_delta(db_session, "user-1", "USD", -5.0)

    db_session.expire_all()
    assert get_wallet(db_session, "user-1", "USD").balance == pytest.approx(3.0)


def test_wallets_are_per_currency(db_session):
    with atomic(db_session):
        apply_delta(db_session, "user-1", "USD", 1.0)
        apply_delta(db_session, "user-1", "USDT_TRC20", 2.0)

    assert get_wallet(db_session, "user-1", "USD").balance == pytest.approx(1.0)
    assert get_wallet(db_session, "user-1", "USDT_TRC20").balance == pytest.approx(2.0)


def test_create_wallet_twice_conflicts(db_session):
    create_wallet(db_session, "user-1", "USD")
    with pytest.raises(ConflictError) as exc_info:
        create_wallet(db_session, "user-1", "USD")
    assert exc_info.value.code == "WALLET_ALREADY_EXISTS"


def test_get_wallet_by_id_not_found(db_session):
    with pytest.raises(NotFoundError):
        get_wallet_by_id(db_session, 999)


def test_withdrawal_amount_stored_negative(db_session):
    with atomic(db_session):
        wallet = apply_delta(db_session, "user-1", "USD", 10.0)
        transaction = record_transaction(
            db_session, wallet, TransactionType.WITHDRAWAL.value, 4.0,
            TransactionStatus.PENDING.value, TransactionSource.PAYPAL_PAYOUT.value,
            reference_id="BATCH-1",
        )

    assert transaction.amount == pytest.approx(-4.0)
    assert transaction.currency_type == "USD"


def test_duplicate_reference_is_rejected(db_session):
    with atomic(db_session):
        wallet = apply_delta(db_session, "user-1", "USD", 10.0)
        record_transaction(
            db_session, wallet, TransactionType.DEPOSIT.value, 10.0,
            TransactionStatus.COMPLETED.value, TransactionSource.PAYPAL_CAPTURE.value,
            reference_id="CAP-1",
        )

    with pytest.raises(DuplicateTransactionError):
        record_transaction(
            db_session, wallet, TransactionType.DEPOSIT.value, 10.0,
            TransactionStatus.COMPLETED.value, TransactionSource.PAYPAL_CAPTURE.value,
            reference_id="CAP-1",
        )


def test_same_reference_from_another_source_is_allowed(db_session):
    with atomic(db_session):
        wallet = apply_delta(db_session, "user-1", "USD", 10.0)
        record_transaction(
            db_session, wallet, TransactionType.DEPOSIT.value, 10.0,
            TransactionStatus.COMPLETED.value, TransactionSource.PAYPAL_CAPTURE.value,
            reference_id="REF-1",
        )
        record_transaction(
            db_session, wallet, TransactionType.WITHDRAWAL.value, 1.0,
            TransactionStatus.PENDING.value, TransactionSource.PAYPAL_PAYOUT.value,
            reference_id="REF-1",
        )

    assert find_transaction(db_session, TransactionSource.PAYPAL_PAYOUT.value, "REF-1") is not None


def test_list_transactions_newest_first_and_capped(db_session):
    with atomic(db_session):
        wallet = apply_delta(db_session, "user-1", "USD", 1.0)
        for i in range(5):
            record_transaction(
                db_session, wallet, TransactionType.DEPOSIT.value, 1.0,
                TransactionStatus.COMPLETED.value, TransactionSource.MANUAL.value,
                description=f"deposit {i}",
            )

    page = list_transactions(db_session, wallet.id, limit=2)
    assert [t.description for t in page] == ["deposit 4", "deposit 3"]

    second_page = list_transactions(db_session, wallet.id, limit=2, offset=2)
    assert [t.description for t in second_page] == ["deposit 2", "deposit 1"]

    assert len(list_transactions(db_session, wallet.id, limit=1000)) == 5


def test_mark_completed_moves_pending_only(db_session):
    with atomic(db_session):
        wallet = apply_delta(db_session, "user-1", "USD", 10.0)
        record_transaction(
            db_session, wallet, TransactionType.WITHDRAWAL.value, 5.0,
            TransactionStatus.PENDING.value, TransactionSource.COINPAYMENTS_WITHDRAWAL.value,
            reference_id="WD-1",
        )

    transaction = mark_completed(db_session, TransactionSource.COINPAYMENTS_WITHDRAWAL.value, "WD-1")
    assert transaction.status == TransactionStatus.COMPLETED.value
    assert transaction.amount == pytest.approx(-5.0)
    assert mark_completed(db_session, TransactionSource.COINPAYMENTS_WITHDRAWAL.value, "WD-unknown") is None


def test_commission_sink_creates_then_increments(db_session):
    with atomic(db_session):
        credit_commission(db_session, "USD", 5.0)
    with atomic(db_session):
        credit_commission(db_session, "USD", 2.5)

    db_session.expire_all()
    admin_wallet = db_session.query(AdminWallet).filter(AdminWallet.currency_type == "USD").one()
    assert admin_wallet.balance == pytest.approx(7.5)
    assert admin_wallet.total_earned == pytest.approx(7.5)
    assert admin_wallet.total_withdrawn == 0.0


def test_commission_withdrawal_reports_shortfall(db_session):
    with atomic(db_session):
        credit_commission(db_session, "USD", 5.0)

    with pytest.raises(InsufficientBalanceError) as exc_info:
        withdraw_commission(db_session, "USD", 8.0)
    assert exc_info.value.details["shortfall"] == pytest.approx(3.0)

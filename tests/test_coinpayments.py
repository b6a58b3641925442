import pytest

from taskinn.core.coinpayments_client import sign_payload, verify_ipn_signature
from taskinn.models.admin import AdminWallet
from taskinn.models.wallet import WalletTransaction
from taskinn.schemas.processor_schemas import CryptoWithdrawalInfo
from taskinn.services.coinpayments_service import build_label, parse_label
from tests.conftest import (
    IPN_SECRET,
    deposit_ipn_fields,
    fund_wallet,
    post_raw_json,
    signed_ipn,
    transactions_for,
    wallet_for,
)

IPN_URL = "/api/payments/coinpayments/ipn"
USDT = "USDT_TRC20"


def post_ipn(client, fields, secret=IPN_SECRET):
    body, headers = signed_ipn(fields, secret)
    return client.post(IPN_URL, content=body, headers=headers)


class TestSignature:
    def test_matching_signature(self):
        body = b"amount=50&txn_id=TXN-1"
        assert verify_ipn_signature(body, sign_payload(body.decode(), "s3cret"), secret="s3cret")

    def test_header_case_is_ignored(self):
        body = b"amount=50&txn_id=TXN-1"
        assert verify_ipn_signature(body, sign_payload(body.decode(), "s3cret").upper(), secret="s3cret")

    def test_tampered_body(self):
        signature = sign_payload("amount=50&txn_id=TXN-1", "s3cret")
        assert not verify_ipn_signature(b"amount=5000&txn_id=TXN-1", signature, secret="s3cret")

    def test_missing_header(self):
        assert not verify_ipn_signature(b"amount=50", None, secret="s3cret")

    def test_signed_over_raw_bytes(self):
        body = b"txn_id=\xff\xfe"
        assert verify_ipn_signature(body, sign_payload(body, "s3cret"), secret="s3cret")
        assert not verify_ipn_signature(body, "0" * 128, secret="s3cret")

    def test_non_ascii_header(self):
        assert not verify_ipn_signature(b"amount=50", "é" * 128, secret="s3cret")


class TestLabel:
    def test_round_trip(self):
        assert build_label("user-42") == "TaskInn-user-42"
        assert parse_label("TaskInn-user-42") == "user-42"

    @pytest.mark.parametrize("label", [None, "", "TaskInn-", "Other-user-42", "user-42"])
    def test_foreign_labels(self, label):
        assert parse_label(label) is None


class TestCreateAddress:
    def test_issues_labelled_address(self, client, coinpayments):
        response = client.post("/api/payments/coinpayments/create-address", json={"userId": "user-1"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["address"] == "TXyz123DepositAddress"
        assert coinpayments.addresses[0]["label"] == "TaskInn-user-1"
        assert coinpayments.addresses[0]["ipn_url"].endswith("/api/payments/coinpayments/ipn")

    def test_requires_user(self, client, coinpayments):
        response = client.post("/api/payments/coinpayments/create-address", json={})
        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_USER_ID"
        assert coinpayments.addresses == []


class TestDepositIPN:
    def test_credits_amount_less_commission_and_fee(self, client, db_session):
        response = post_ipn(client, deposit_ipn_fields())

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "IPN processed"}

        wallet = wallet_for(db_session, "user-1", USDT)
        assert wallet.balance == pytest.approx(46.5)

        [transaction] = transactions_for(db_session, wallet.id)
        assert transaction.reference_id == "TXN-1"
        assert transaction.source == "coinpayments_deposit"
        assert transaction.commission_amount == pytest.approx(2.5)

        admin_wallet = db_session.query(AdminWallet).filter(AdminWallet.currency_type == USDT).one()
        assert admin_wallet.total_earned == pytest.approx(2.5)

    def test_replay_is_acknowledged_without_crediting(self, client, db_session):
        post_ipn(client, deposit_ipn_fields())
        response = post_ipn(client, deposit_ipn_fields())

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Duplicate IPN"}
        assert wallet_for(db_session, "user-1", USDT).balance == pytest.approx(46.5)
        assert db_session.query(WalletTransaction).count() == 1

    def test_distinct_transactions_accumulate(self, client, db_session):
        post_ipn(client, deposit_ipn_fields(txn_id="TXN-1", amount="20", fee="0"))
        post_ipn(client, deposit_ipn_fields(txn_id="TXN-2", amount="40", fee="0"))

        assert wallet_for(db_session, "user-1", USDT).balance == pytest.approx(57.0)

    def test_pending_status_touches_nothing(self, client, db_session):
        response = post_ipn(client, deposit_ipn_fields(status="50"))

        assert response.json() == {"success": True, "message": "Payment pending"}
        assert wallet_for(db_session, "user-1", USDT) is None
        assert db_session.query(AdminWallet).count() == 0

    def test_invalid_label_is_acknowledged(self, client, db_session):
        response = post_ipn(client, deposit_ipn_fields(label="someone-else"))

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Invalid label"}
        assert db_session.query(WalletTransaction).count() == 0

    def test_unknown_merchant_is_dropped(self, client, db_session):
        response = post_ipn(client, deposit_ipn_fields(merchant="another-merchant"))

        assert response.json()["message"] == "Unknown merchant"
        assert db_session.query(WalletTransaction).count() == 0

    def test_other_currency_is_dropped(self, client, db_session):
        response = post_ipn(client, deposit_ipn_fields(currency="BTC"))

        assert response.json()["message"] == "Unsupported currency"
        assert db_session.query(WalletTransaction).count() == 0

    def test_fee_exceeding_net_is_dropped(self, client, db_session):
        response = post_ipn(client, deposit_ipn_fields(amount="1", fee="2"))

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert wallet_for(db_session, "user-1", USDT) is None

    @pytest.mark.parametrize("amount,fee", [("inf", "0"), ("-inf", "0"), ("nan", "0"), ("50", "inf")])
    def test_non_finite_amount_is_dropped(self, client, db_session, amount, fee):
        response = post_ipn(client, deposit_ipn_fields(amount=amount, fee=fee))

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Invalid amount"}
        assert wallet_for(db_session, "user-1", USDT) is None
        assert db_session.query(AdminWallet).count() == 0

    def test_undecodable_body_without_valid_signature(self, client, db_session):
        response = client.post(
            IPN_URL,
            content=b"txn_id=\xff\xfe",
            headers={"HMAC": "0" * 128, "Content-Type": "application/x-www-form-urlencoded"},
        )

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_SIGNATURE"

    def test_undecodable_signed_body_is_dropped(self, client, db_session):
        body = b"txn_id=\xff\xfe&amount=50"
        response = client.post(
            IPN_URL,
            content=body,
            headers={"HMAC": sign_payload(body, IPN_SECRET), "Content-Type": "application/x-www-form-urlencoded"},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Invalid encoding"}
        assert db_session.query(WalletTransaction).count() == 0

    def test_bad_signature_is_rejected(self, client, db_session):
        response = post_ipn(client, deposit_ipn_fields(), secret="wrong-secret")

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_SIGNATURE"
        assert wallet_for(db_session, "user-1", USDT) is None

    def test_missing_signature_is_rejected(self, client):
        body, _ = signed_ipn(deposit_ipn_fields())
        response = client.post(
            IPN_URL,
            content=body,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        assert response.status_code == 401


class TestWithdraw:
    def test_sends_net_and_debits_gross(self, client, db_session, coinpayments):
        fund_wallet(client, "user-1", 100.0, USDT)

        response = client.post(
            "/api/payments/coinpayments/withdraw",
            json={"userId": "user-1", "amount": 40, "walletAddress": "TRecipientAddress123456"},
        )

        assert response.status_code == 200
        withdrawal = response.json()["withdrawal"]
        assert withdrawal["amount"] == pytest.approx(40.0)
        assert withdrawal["commission"] == pytest.approx(2.0)
        assert withdrawal["netAmount"] == pytest.approx(38.0)
        assert withdrawal["withdrawalId"] == "WD-1"
        assert withdrawal["status"] == "pending"

        assert coinpayments.withdrawals[0]["amount"] == pytest.approx(38.0)
        assert coinpayments.withdrawals[0]["address"] == "TRecipientAddress123456"
        assert wallet_for(db_session, "user-1", USDT).balance == pytest.approx(60.0)

    def test_auto_confirmed_withdrawal_is_completed(self, client, coinpayments):
        coinpayments.withdrawal_status = "1"
        fund_wallet(client, "user-1", 100.0, USDT)

        response = client.post(
            "/api/payments/coinpayments/withdraw",
            json={"userId": "user-1", "amount": 10, "walletAddress": "TRecipientAddress123456"},
        )

        assert response.json()["withdrawal"]["status"] == "completed"

    def test_usd_balance_does_not_cover_usdt(self, client, coinpayments):
        fund_wallet(client, "user-1", 100.0, "USD")

        response = client.post(
            "/api/payments/coinpayments/withdraw",
            json={"userId": "user-1", "amount": 10, "walletAddress": "TRecipientAddress123456"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INSUFFICIENT_BALANCE"
        assert coinpayments.withdrawals == []

    def test_missing_address(self, client):
        response = client.post("/api/payments/coinpayments/withdraw", json={"userId": "user-1", "amount": 10})
        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_WALLET_ADDRESS"

    def test_infinite_amount_is_rejected(self, client, db_session, coinpayments):
        fund_wallet(client, "user-1", 100.0, USDT)

        response = post_raw_json(
            client,
            "/api/payments/coinpayments/withdraw",
            '{"userId": "user-1", "amount": Infinity, "walletAddress": "TRecipientAddress123456"}',
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_AMOUNT"
        assert coinpayments.withdrawals == []
        assert wallet_for(db_session, "user-1", USDT).balance == pytest.approx(100.0)


class TestWithdrawalConfirmation:
    def withdraw(self, client):
        fund_wallet(client, "user-1", 100.0, USDT)
        client.post(
            "/api/payments/coinpayments/withdraw",
            json={"userId": "user-1", "amount": 40, "walletAddress": "TRecipientAddress123456"},
        )

    def test_status_lookup_completes_entry(self, client, db_session, coinpayments):
        self.withdraw(client)

        pending = client.get("/api/payments/coinpayments/withdrawal/WD-1").json()
        assert pending["localStatus"] == "pending"

        coinpayments.withdrawal_infos["WD-1"] = CryptoWithdrawalInfo(
            withdrawal_id="WD-1", status="2", status_text="Complete"
        )
        done = client.get("/api/payments/coinpayments/withdrawal/WD-1").json()
        assert done["status"] == "Complete"
        assert done["localStatus"] == "completed"

    def test_withdrawal_ipn_completes_entry(self, client, db_session):
        self.withdraw(client)

        response = post_ipn(client, {"ipn_type": "withdrawal", "merchant": "merchant-123", "id": "WD-1", "status": "2"})

        assert response.json() == {"success": True, "message": "Withdrawal confirmed"}
        wallet = wallet_for(db_session, "user-1", USDT)
        assert transactions_for(db_session, wallet.id)[-1].status == "completed"
        assert wallet.balance == pytest.approx(60.0)

    def test_withdrawal_ipn_for_unknown_id(self, client):
        response = post_ipn(client, {"ipn_type": "withdrawal", "merchant": "merchant-123", "id": "WD-9", "status": "2"})
        assert response.json()["message"] == "Unknown withdrawal"

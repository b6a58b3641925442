"""
Shared fixtures for the settlement API tests

In-memory SQLite shared across threads, fake PayPal / CoinPayments clients
injected through FastAPI dependency overrides, and helpers for signed IPNs.
"""

import os

IPN_SECRET = "test-ipn-secret"
MERCHANT_ID = "merchant-123"

# Must be set before taskinn.core.config builds its Settings instance
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["COINPAYMENTS_IPN_SECRET"] = IPN_SECRET
os.environ["COINPAYMENTS_MERCHANT_ID"] = MERCHANT_ID
os.environ["DEBUG"] = "true"

from typing import Dict, List, Optional
from urllib.parse import urlencode

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from taskinn.core.coinpayments_client import get_coinpayments_client, sign_payload
from taskinn.core.database import Base, get_db
from taskinn.core.exceptions import UpstreamProcessorError
from taskinn.core.paypal_client import get_paypal_client
from taskinn.core.rate_limit import limiter
from taskinn.main import app
from taskinn.models.wallet import Wallet, WalletTransaction
from taskinn.schemas.processor_schemas import (
    PayPalOrder,
    PayPalCapture,
    PayPalPayout,
    CryptoDepositAddress,
    CryptoWithdrawal,
    CryptoWithdrawalInfo,
)

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

limiter.enabled = False


class FakePayPalClient:
    """Records calls and returns canned processor results"""

    def __init__(self):
        self.captures: Dict[str, PayPalCapture] = {}
        self.payouts: List[dict] = []
        self.payout_status = "PENDING"
        self.batch_statuses: Dict[str, str] = {}
        self.error: Optional[UpstreamProcessorError] = None

    def create_order(self, amount, currency="USD"):
        if self.error:
            raise self.error
        return PayPalOrder(order_id="ORDER-1", approval_url="https://www.sandbox.paypal.com/checkoutnow?token=ORDER-1")

    def capture_order(self, order_id):
        if self.error:
            raise self.error
        return self.captures[order_id]

    def create_payout(self, recipient_email, amount, currency="USD", note=None):
        if self.error:
            raise self.error
        self.payouts.append({"email": recipient_email, "amount": amount, "currency": currency, "note": note})
        return PayPalPayout(batch_id=f"BATCH-{len(self.payouts)}", status=self.payout_status)

    def get_payout_status(self, batch_id):
        return PayPalPayout(batch_id=batch_id, status=self.batch_statuses.get(batch_id, "PENDING"))


class FakeCoinPaymentsClient:
    def __init__(self):
        self.addresses: List[dict] = []
        self.withdrawals: List[dict] = []
        self.withdrawal_status = "0"
        self.withdrawal_infos: Dict[str, CryptoWithdrawalInfo] = {}
        self.error: Optional[UpstreamProcessorError] = None

    def get_callback_address(self, label, ipn_url):
        if self.error:
            raise self.error
        self.addresses.append({"label": label, "ipn_url": ipn_url})
        return CryptoDepositAddress(address="TXyz123DepositAddress")

    def create_withdrawal(self, address, amount, note=None):
        if self.error:
            raise self.error
        self.withdrawals.append({"address": address, "amount": amount, "note": note})
        return CryptoWithdrawal(withdrawal_id=f"WD-{len(self.withdrawals)}", status=self.withdrawal_status, amount=amount)

    def get_withdrawal_info(self, withdrawal_id):
        return self.withdrawal_infos.get(
            withdrawal_id,
            CryptoWithdrawalInfo(withdrawal_id=withdrawal_id, status="1", status_text="Pending"),
        )


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def paypal():
    return FakePayPalClient()


@pytest.fixture
def coinpayments():
    return FakeCoinPaymentsClient()


@pytest.fixture
def client(db_session, paypal, coinpayments):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_paypal_client] = lambda: paypal
    app.dependency_overrides[get_coinpayments_client] = lambda: coinpayments
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


def user_headers(user_id: str) -> Dict[str, str]:
    return {"X-User-Id": user_id}


def signed_ipn(fields: Dict[str, str], secret: str = IPN_SECRET):
    """Form-encode an IPN and sign it the way CoinPayments does"""
    body = urlencode(fields)
    headers = {
        "HMAC": sign_payload(body, secret),
        "Content-Type": "application/x-www-form-urlencoded",
    }
    return body, headers


def deposit_ipn_fields(**overrides) -> Dict[str, str]:
    fields = {
        "ipn_version": "1.0",
        "ipn_type": "deposit",
        "ipn_mode": "hmac",
        "merchant": MERCHANT_ID,
        "txn_id": "TXN-1",
        "address": "TXyz123DepositAddress",
        "status": "100",
        "status_text": "Deposit confirmed",
        "currency": "USDT.TRC20",
        "amount": "50",
        "fee": "1",
        "label": "TaskInn-user-1",
    }
    fields.update(overrides)
    return fields


def fund_wallet(client: TestClient, user_id: str, amount: float, currency_type: str = "USD") -> dict:
    response = client.post(
        "/api/wallets/add-funds",
        json={"userId": user_id, "currencyType": currency_type, "amount": amount},
    )
    assert response.status_code == 200, response.text
    return response.json()


def wallet_for(db_session, user_id: str, currency_type: str = "USD") -> Optional[Wallet]:
    db_session.expire_all()
    return db_session.query(Wallet).filter(
        Wallet.user_id == user_id, Wallet.currency_type == currency_type
    ).first()


def transactions_for(db_session, wallet_id: int) -> List[WalletTransaction]:
    db_session.expire_all()
    return db_session.query(WalletTransaction).filter(
        WalletTransaction.wallet_id == wallet_id
    ).order_by(WalletTransaction.id).all()


def post_raw_json(client: TestClient, url: str, body: str, headers: Optional[Dict[str, str]] = None):
    """POST a JSON document verbatim, e.g. with the non-standard Infinity literal"""
    return client.post(url, content=body, headers={"Content-Type": "application/json", **(headers or {})})

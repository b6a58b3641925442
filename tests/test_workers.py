import pytest

from tests.conftest import fund_wallet, user_headers

EARNINGS_URL = "/api/workers/earnings"


@pytest.fixture
def paid_worker(client):
    """worker-1: 5 topped up, paid 20 and 10 for tasks, withdrew 10"""
    employer = fund_wallet(client, "employer-1", 50.0)
    worker = fund_wallet(client, "worker-1", 5.0)
    for amount in (20, 10):
        response = client.post(
            "/api/wallets/transfer",
            json={"fromWalletId": employer["id"], "toWalletId": worker["id"], "amount": amount},
            headers=user_headers("employer-1"),
        )
        assert response.status_code == 200, response.text

    response = client.post(
        "/api/wallets/withdraw",
        json={"amount": 10, "currencyType": "USD", "paymentMethod": "paypal", "paymentAddress": "worker@gmail.com"},
        headers=user_headers("worker-1"),
    )
    assert response.status_code == 200, response.text
    return worker


def get_earnings(client, user_id="worker-1", **params):
    params.setdefault("userId", user_id)
    return client.get(EARNINGS_URL, params=params, headers=user_headers(user_id))


def test_summary_counts_only_task_payments_received(client, paid_worker):
    response = get_earnings(client)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["summary"] == {
        "totalEarnings": 30.0,
        "availableBalance": 25.0,
        "thisMonthEarnings": 30.0,
        "totalWithdrawn": 10.0,
    }


def test_history_lists_task_payments_and_withdrawals_newest_first(client, paid_worker):
    transactions = get_earnings(client).json()["data"]["transactions"]

    assert [(t["type"], t["amount"]) for t in transactions] == [
        ("withdrawal", -10.0),
        ("task_payment", 10.0),
        ("task_payment", 20.0),
    ]
    assert all(t["currencyType"] == "USD" for t in transactions)


def test_history_pagination(client, paid_worker):
    transactions = get_earnings(client, limit=1, offset=1).json()["data"]["transactions"]
    assert [t["amount"] for t in transactions] == [10.0]


def test_no_wallet_reports_zeros(client):
    response = get_earnings(client, currencyType="USDT_TRC20")

    assert response.status_code == 200
    assert response.json()["data"] == {
        "summary": {"totalEarnings": 0.0, "availableBalance": 0.0, "thisMonthEarnings": 0.0, "totalWithdrawn": 0.0},
        "transactions": [],
    }


def test_other_workers_earnings_are_forbidden(client, paid_worker):
    response = client.get(EARNINGS_URL, params={"userId": "worker-1"}, headers=user_headers("employer-1"))

    assert response.status_code == 403
    assert response.json()["code"] == "UNAUTHORIZED_ACCESS"


def test_requires_user_id(client):
    response = client.get(EARNINGS_URL, headers=user_headers("worker-1"))

    assert response.status_code == 400
    assert response.json()["code"] == "MISSING_USER_ID"


def test_rejects_unknown_currency(client):
    response = get_earnings(client, currencyType="EUR")

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_CURRENCY_TYPE"

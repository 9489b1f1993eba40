from datetime import date, timedelta
from decimal import Decimal

from fintrack.db.core import SecurityDB
from tests.conftest import create_account, read_account


def _trade(client, headers, account_id, ticker, trade_type, quantity, price, trade_date=None):
    payload = {
        "account_id": account_id,
        "ticker_symbol": ticker,
        "trade_type": trade_type,
        "quantity": quantity,
        "price_per_share": price,
    }
    if trade_date:
        payload["trade_date"] = trade_date.isoformat()
    return client.post("/portfolio/trades", headers=headers, json=payload)


def test_buy_creates_security_and_cash_expense(client, auth_headers):
    account = create_account(client, auth_headers, name="Broker", account_type="Brokerage", initial_balance="5000")

    response = _trade(client, auth_headers, account["account_id"], "acme", "BUY", "10", "100")
    assert response.status_code == 201
    trade = response.json()
    assert trade["ticker_symbol"] == "ACME"
    assert trade["security_name"] == "ACME"
    assert trade["account_name"] == "Broker"
    assert Decimal(trade["total_amount"]) == Decimal("1000.00")

    rows = client.get("/transactions/", headers=auth_headers).json()["transactions"]
    assert len(rows) == 1
    assert rows[0]["transaction_type"] == "EXPENSE"
    assert Decimal(rows[0]["amount"]) == Decimal("1000.00")
    assert rows[0]["description"] == "BUY 10 shares of ACME @ 100.00"
    assert Decimal(read_account(client, auth_headers, account["account_id"])["current_balance"]) == Decimal("4000.00")


def test_sell_books_cash_income(client, auth_headers):
    account = create_account(client, auth_headers)
    _trade(client, auth_headers, account["account_id"], "ACME", "BUY", "10", "100")
    _trade(client, auth_headers, account["account_id"], "ACME", "SELL", "4", "150")

    assert Decimal(read_account(client, auth_headers, account["account_id"])["current_balance"]) == Decimal("-400.00")


def test_known_ticker_is_reused(client, auth_headers):
    account = create_account(client, auth_headers)
    trade = _trade(client, auth_headers, account["account_id"], "tcs.ns", "BUY", "1", "3500").json()
    assert trade["security_name"] == "Tata Consultancy Services Limited"


def test_holdings_use_proportional_cost_basis(client, auth_headers):
    account = create_account(client, auth_headers)
    today = date.today()
    _trade(client, auth_headers, account["account_id"], "ACME", "BUY", "10", "100", today - timedelta(days=2))
    _trade(client, auth_headers, account["account_id"], "ACME", "SELL", "4", "150", today - timedelta(days=1))
    _trade(client, auth_headers, account["account_id"], "GONE", "BUY", "5", "10", today - timedelta(days=2))
    _trade(client, auth_headers, account["account_id"], "GONE", "SELL", "5", "12", today - timedelta(days=1))

    holdings = client.get("/portfolio/holdings", headers=auth_headers).json()
    assert len(holdings) == 1
    acme = holdings[0]
    assert acme["ticker_symbol"] == "ACME"
    assert Decimal(acme["total_quantity"]) == Decimal("6")
    assert Decimal(acme["total_invested"]) == Decimal("600.00")
    assert Decimal(acme["average_cost_basis"]) == Decimal("100.00")
    assert acme["trades_count"] == 2
    assert acme["current_price"] is None

    summary = client.get("/portfolio/summary", headers=auth_headers).json()
    assert summary["holdings_count"] == 1
    assert Decimal(summary["total_invested"]) == Decimal("600.00")
    assert Decimal(summary["total_value"]) == Decimal("600.00")
    assert Decimal(summary["total_unrealized_pl"]) == Decimal("0")


def test_holdings_are_split_per_account(client, auth_headers):
    first = create_account(client, auth_headers, name="A")
    second = create_account(client, auth_headers, name="B")
    _trade(client, auth_headers, first["account_id"], "ACME", "BUY", "1", "10")
    _trade(client, auth_headers, second["account_id"], "ACME", "BUY", "2", "10")

    holdings = client.get("/portfolio/holdings", headers=auth_headers).json()
    assert [(h["account_name"], Decimal(h["total_quantity"])) for h in holdings] == [
        ("A", Decimal("1")), ("B", Decimal("2")),
    ]


def test_deleting_trade_keeps_cash_transaction(client, auth_headers):
    account = create_account(client, auth_headers, initial_balance="1000")
    trade = _trade(client, auth_headers, account["account_id"], "ACME", "BUY", "2", "100").json()

    deleted = client.delete(f"/portfolio/trades/{trade['trade_id']}", headers=auth_headers)
    assert deleted.status_code == 200
    assert deleted.json()["deleted_at"] is not None

    assert client.get("/portfolio/holdings", headers=auth_headers).json() == []
    assert client.get(f"/portfolio/trades/{trade['trade_id']}", headers=auth_headers).status_code == 404
    assert Decimal(read_account(client, auth_headers, account["account_id"])["current_balance"]) == Decimal("800.00")
    assert [t["trade_id"] for t in client.get("/portfolio/trades/trash", headers=auth_headers).json()] == \
        [trade["trade_id"]]

    restored = client.post(f"/portfolio/trades/{trade['trade_id']}/restore", headers=auth_headers)
    assert restored.status_code == 200
    assert len(client.get("/portfolio/holdings", headers=auth_headers).json()) == 1

    again = client.post(f"/portfolio/trades/{trade['trade_id']}/restore", headers=auth_headers)
    assert again.status_code == 400


def test_trade_listing(client, auth_headers):
    account = create_account(client, auth_headers)
    today = date.today()
    _trade(client, auth_headers, account["account_id"], "ACME", "BUY", "1", "10", today - timedelta(days=3))
    _trade(client, auth_headers, account["account_id"], "ACME", "SELL", "1", "11", today - timedelta(days=1))
    _trade(client, auth_headers, account["account_id"], "ZED", "BUY", "1", "10", today - timedelta(days=2))

    page = client.get("/portfolio/trades", headers=auth_headers).json()
    assert page["pagination"]["total"] == 3
    assert [t["trade_date"] for t in page["trades"]] == [
        (today - timedelta(days=n)).isoformat() for n in (1, 2, 3)
    ]

    acme = client.get("/portfolio/trades", headers=auth_headers, params={"ticker_symbol": "acme"}).json()
    assert acme["pagination"]["total"] == 2

    buys = client.get("/portfolio/trades", headers=auth_headers, params={"trade_type": "BUY"}).json()
    assert buys["pagination"]["total"] == 2


def test_update_trade_ticker(client, auth_headers):
    account = create_account(client, auth_headers)
    trade = _trade(client, auth_headers, account["account_id"], "ACME", "BUY", "3", "10").json()

    response = client.put(f"/portfolio/trades/{trade['trade_id']}", headers=auth_headers, json={
        "ticker_symbol": "newco", "quantity": "4",
    })
    assert response.status_code == 200
    assert response.json()["ticker_symbol"] == "NEWCO"
    assert Decimal(response.json()["quantity"]) == Decimal("4")
    assert response.json()["security_id"] != trade["security_id"]

    # The cash row booked at creation is left as it was
    rows = client.get("/transactions/", headers=auth_headers).json()["transactions"]
    assert Decimal(rows[0]["amount"]) == Decimal("30.00")


def test_trade_validation(client, auth_headers, other_headers):
    account = create_account(client, auth_headers)
    assert _trade(client, auth_headers, account["account_id"], "ACME", "BUY", "0", "10").status_code == 400
    assert _trade(client, auth_headers, account["account_id"], "ACME", "HOLD", "1", "10").status_code == 400
    assert _trade(client, other_headers, account["account_id"], "ACME", "BUY", "1", "10").status_code == 404


def test_securities(client, auth_headers):
    created = client.post("/portfolio/securities", headers=auth_headers, json={"ticker_symbol": "vti"})
    assert created.status_code == 201
    assert created.json()["ticker_symbol"] == "VTI"
    assert created.json()["security_name"] == "VTI"
    assert created.json()["asset_type"] == "Stock"

    duplicate = client.post("/portfolio/securities", headers=auth_headers, json={
        "ticker_symbol": "VTI", "security_name": "Total Market",
    })
    assert duplicate.status_code == 409

    account = create_account(client, auth_headers)
    _trade(client, auth_headers, account["account_id"], "VTI", "BUY", "1", "200", date.today() - timedelta(days=5))
    _trade(client, auth_headers, account["account_id"], "VTI", "BUY", "1", "210")

    traded = client.get("/portfolio/securities", headers=auth_headers).json()
    assert [s["ticker_symbol"] for s in traded] == ["VTI"]
    assert traded[0]["trade_count"] == 2
    assert traded[0]["first_trade_date"] == (date.today() - timedelta(days=5)).isoformat()
    assert traded[0]["last_trade_date"] == date.today().isoformat()


def test_trade_values_are_checked_after_rounding(client, auth_headers):
    account = create_account(client, auth_headers)

    tiny_quantity = _trade(client, auth_headers, account["account_id"], "ACME", "BUY", "0.000001", "10")
    assert tiny_quantity.status_code == 400
    tiny_price = _trade(client, auth_headers, account["account_id"], "ACME", "BUY", "1", "0.004")
    assert tiny_price.status_code == 400
    assert client.get("/portfolio/trades", headers=auth_headers).json()["pagination"]["total"] == 0

    trade = _trade(client, auth_headers, account["account_id"], "ACME", "BUY", "0.000005", "0.005").json()
    assert Decimal(trade["quantity"]) == Decimal("0.00001")
    assert Decimal(trade["price_per_share"]) == Decimal("0.01")


def test_trade_update_rounds_and_rejects_zero(client, auth_headers):
    account = create_account(client, auth_headers)
    trade = _trade(client, auth_headers, account["account_id"], "ACME", "BUY", "1", "10").json()
    url = f"/portfolio/trades/{trade['trade_id']}"

    assert client.put(url, headers=auth_headers, json={"quantity": "0.000001"}).status_code == 400
    assert client.put(url, headers=auth_headers, json={"price_per_share": "0.001"}).status_code == 400

    updated = client.put(url, headers=auth_headers, json={"quantity": "2.123456", "price_per_share": "12.345"})
    assert updated.status_code == 200
    assert Decimal(updated.json()["quantity"]) == Decimal("2.12346")
    assert Decimal(updated.json()["price_per_share"]) == Decimal("12.35")


def test_creating_a_retired_ticker_restores_it(client, auth_headers, db_session):
    created = client.post("/portfolio/securities", headers=auth_headers, json={"ticker_symbol": "OLD"}).json()
    retired = db_session.get(SecurityDB, created["security_id"])
    retired.soft_delete()
    db_session.commit()

    response = client.post("/portfolio/securities", headers=auth_headers, json={
        "ticker_symbol": "old", "security_name": "Old Industries", "asset_type": "ETF",
    })
    assert response.status_code == 201
    assert response.json()["security_id"] == created["security_id"]
    assert response.json()["security_name"] == "Old Industries"
    assert response.json()["asset_type"] == "ETF"

    db_session.expire_all()
    assert db_session.get(SecurityDB, created["security_id"]).deleted_at is None

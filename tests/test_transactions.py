from datetime import date, timedelta
from decimal import Decimal

import pytest

from fintrack.crud import crud_transaction
from fintrack.db.core import TransactionDB, TransactionType
from tests.conftest import category_named, create_account, create_transaction, read_account


@pytest.fixture()
def two_accounts(client, auth_headers):
    checking = create_account(client, auth_headers, name="Checking", initial_balance="1000")
    savings = create_account(client, auth_headers, name="Savings", account_type="Savings", initial_balance="0")
    return checking, savings


def _transfer(client, headers, from_id, to_id, amount="100", **extra):
    payload = {"from_account_id": from_id, "to_account_id": to_id, "amount": amount}
    payload.update(extra)
    return client.post("/transactions/transfer", headers=headers, json=payload)


def test_transfer_creates_paired_legs(client, auth_headers, two_accounts):
    checking, savings = two_accounts
    response = _transfer(client, auth_headers, checking["account_id"], savings["account_id"], "250")
    assert response.status_code == 201
    body = response.json()

    out_leg, in_leg = body["from_transaction"], body["to_transaction"]
    assert body["message"] == "Transfer completed successfully"
    assert out_leg["transfer_group_id"] == in_leg["transfer_group_id"] == body["transfer_group_id"]
    assert out_leg["transfer_direction"] == "OUT"
    assert in_leg["transfer_direction"] == "IN"
    assert out_leg["transaction_type"] == in_leg["transaction_type"] == "TRANSFER"
    assert Decimal(out_leg["amount"]) == Decimal(in_leg["amount"]) == Decimal("250.00")
    assert out_leg["description"] == "Transfer to Savings"
    assert in_leg["description"] == "Transfer from Checking"
    assert out_leg["category_id"] is None


def test_transfer_moves_transfer_view_not_current_balance(client, auth_headers, two_accounts):
    checking, savings = two_accounts
    _transfer(client, auth_headers, checking["account_id"], savings["account_id"], "250")

    source = read_account(client, auth_headers, checking["account_id"])
    target = read_account(client, auth_headers, savings["account_id"])
    assert Decimal(source["current_balance"]) == Decimal("1000.00")
    assert Decimal(source["net_transfers"]) == Decimal("-250.00")
    assert Decimal(source["balance_with_transfers"]) == Decimal("750.00")
    assert Decimal(target["net_transfers"]) == Decimal("250.00")
    assert Decimal(target["balance_with_transfers"]) == Decimal("250.00")


def test_transfer_uses_given_description_for_both_legs(client, auth_headers, two_accounts):
    checking, savings = two_accounts
    body = _transfer(client, auth_headers, checking["account_id"], savings["account_id"],
                     description="Rainy day").json()
    assert body["from_transaction"]["description"] == "Rainy day"
    assert body["to_transaction"]["description"] == "Rainy day"


def test_transfer_validation(client, auth_headers, other_headers, two_accounts):
    checking, savings = two_accounts

    same = _transfer(client, auth_headers, checking["account_id"], checking["account_id"])
    assert same.status_code == 400
    assert same.json() == {"error": "Cannot transfer to the same account"}

    zero = _transfer(client, auth_headers, checking["account_id"], savings["account_id"], "0")
    assert zero.status_code == 400

    foreign = create_account(client, other_headers, name="Bob's")
    stolen = _transfer(client, auth_headers, checking["account_id"], foreign["account_id"])
    assert stolen.status_code == 404


def test_transfer_is_all_or_nothing(client, auth_headers, two_accounts, db_session, monkeypatch):
    checking, savings = two_accounts
    real_insert = crud_transaction._insert_leg
    calls = []

    def failing_insert(*args, **kwargs):
        calls.append(1)
        if len(calls) == 2:
            raise RuntimeError("disk full")
        return real_insert(*args, **kwargs)

    monkeypatch.setattr(crud_transaction, "_insert_leg", failing_insert)

    with pytest.raises(RuntimeError):
        _transfer(client, auth_headers, checking["account_id"], savings["account_id"])

    assert len(calls) == 2
    db_session.expire_all()
    legs = db_session.query(TransactionDB).filter(TransactionDB.transaction_type == TransactionType.TRANSFER).all()
    assert legs == []


def test_transfer_rows_cannot_be_created_or_edited_directly(client, auth_headers, two_accounts):
    checking, savings = two_accounts

    direct = client.post("/transactions/", headers=auth_headers, json={
        "account_id": checking["account_id"], "transaction_type": "TRANSFER", "amount": "5",
    })
    assert direct.status_code == 400

    leg = _transfer(client, auth_headers, checking["account_id"], savings["account_id"]).json()["from_transaction"]
    edit = client.put(f"/transactions/{leg['transaction_id']}", headers=auth_headers, json={"amount": "1"})
    assert edit.status_code == 400
    assert "cannot be updated individually" in edit.json()["error"]

    to_transfer = create_transaction(client, auth_headers, checking["account_id"], "INCOME", "5")
    retype = client.put(f"/transactions/{to_transfer['transaction_id']}", headers=auth_headers,
                        json={"transaction_type": "TRANSFER"})
    assert retype.status_code == 400


def test_deleting_one_leg_removes_both_and_restore_brings_both_back(client, auth_headers, two_accounts):
    checking, savings = two_accounts
    body = _transfer(client, auth_headers, checking["account_id"], savings["account_id"]).json()
    in_id = body["to_transaction"]["transaction_id"]
    out_id = body["from_transaction"]["transaction_id"]

    deleted = client.delete(f"/transactions/{in_id}", headers=auth_headers)
    assert deleted.status_code == 200
    assert deleted.json()["message"] == "Transaction deleted successfully"
    assert {t["transaction_id"] for t in deleted.json()["transactions"]} == {in_id, out_id}
    assert client.get(f"/transactions/{out_id}", headers=auth_headers).status_code == 404
    assert Decimal(read_account(client, auth_headers, checking["account_id"])["net_transfers"]) == Decimal("0")

    trash = client.get("/transactions/trash", headers=auth_headers).json()
    assert {t["transaction_id"] for t in trash} == {in_id, out_id}

    restored = client.post(f"/transactions/{out_id}/restore", headers=auth_headers)
    assert restored.status_code == 200
    assert all(t["deleted_at"] is None for t in restored.json()["transactions"])
    assert client.get(f"/transactions/{in_id}", headers=auth_headers).status_code == 200
    assert Decimal(read_account(client, auth_headers, savings["account_id"])["net_transfers"]) == Decimal("100.00")


def test_restore_live_transaction_is_rejected(client, auth_headers, two_accounts):
    checking, _ = two_accounts
    row = create_transaction(client, auth_headers, checking["account_id"], "INCOME", "5")
    response = client.put(f"/transactions/{row['transaction_id']}/restore", headers=auth_headers)
    assert response.status_code == 400
    assert response.json() == {"error": "Transaction is not deleted"}

    missing = client.put("/transactions/9999/restore", headers=auth_headers)
    assert missing.status_code == 404


def test_category_must_match_transaction_type(client, auth_headers, two_accounts):
    checking, _ = two_accounts
    salary = category_named(client, auth_headers, "Salary")
    groceries = category_named(client, auth_headers, "Food & Dining")

    mismatch = client.post("/transactions/", headers=auth_headers, json={
        "account_id": checking["account_id"], "transaction_type": "EXPENSE", "amount": "5",
        "category_id": salary["category_id"],
    })
    assert mismatch.status_code == 400

    ok = create_transaction(client, auth_headers, checking["account_id"], "EXPENSE", "5",
                            category_id=groceries["category_id"])
    assert ok["category_name"] == "Food & Dining"

    retyped = client.put(f"/transactions/{ok['transaction_id']}", headers=auth_headers,
                         json={"transaction_type": "INCOME"})
    assert retyped.status_code == 400


def test_unknown_or_foreign_category_is_invalid(client, auth_headers, other_headers, two_accounts):
    checking, _ = two_accounts
    bobs = category_named(client, other_headers, "Salary")

    for category_id in (9999, bobs["category_id"]):
        response = client.post("/transactions/", headers=auth_headers, json={
            "account_id": checking["account_id"], "transaction_type": "INCOME", "amount": "5",
            "category_id": category_id,
        })
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid category"}


def test_update_transaction(client, auth_headers, two_accounts):
    checking, savings = two_accounts
    row = create_transaction(client, auth_headers, checking["account_id"], "EXPENSE", "40", description="Lunch")

    response = client.put(f"/transactions/{row['transaction_id']}", headers=auth_headers, json={
        "amount": "-45.5", "account_id": savings["account_id"], "description": "Dinner",
    })
    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["amount"]) == Decimal("45.50")
    assert body["account_id"] == savings["account_id"]
    assert body["description"] == "Dinner"
    assert Decimal(read_account(client, auth_headers, checking["account_id"])["current_balance"]) == Decimal("1000.00")
    assert Decimal(read_account(client, auth_headers, savings["account_id"])["current_balance"]) == Decimal("-45.50")


def test_listing_filters_and_pagination(client, auth_headers, two_accounts):
    checking, savings = two_accounts
    today = date.today()
    for offset in range(5):
        create_transaction(client, auth_headers, checking["account_id"], "EXPENSE", "1",
                           transaction_date=(today - timedelta(days=offset)).isoformat())
    create_transaction(client, auth_headers, savings["account_id"], "INCOME", "9")

    page = client.get("/transactions/", headers=auth_headers, params={"limit": 2, "page": 2}).json()
    assert page["pagination"] == {"page": 2, "limit": 2, "total": 6, "pages": 3}
    assert len(page["transactions"]) == 2

    newest_first = client.get("/transactions/", headers=auth_headers).json()["transactions"]
    dates = [t["transaction_date"] for t in newest_first]
    assert dates == sorted(dates, reverse=True)

    by_account = client.get("/transactions/", headers=auth_headers,
                            params={"account_id": savings["account_id"]}).json()
    assert by_account["pagination"]["total"] == 1

    by_type = client.get("/transactions/", headers=auth_headers, params={"transaction_type": "EXPENSE"}).json()
    assert by_type["pagination"]["total"] == 5

    window = client.get("/transactions/", headers=auth_headers, params={
        "start_date": (today - timedelta(days=3)).isoformat(),
        "end_date": (today - timedelta(days=1)).isoformat(),
    }).json()
    assert window["pagination"]["total"] == 3


def test_transaction_summary(client, auth_headers, two_accounts):
    checking, savings = two_accounts
    create_transaction(client, auth_headers, checking["account_id"], "INCOME", "300")
    create_transaction(client, auth_headers, checking["account_id"], "EXPENSE", "120.25")
    _transfer(client, auth_headers, checking["account_id"], savings["account_id"], "50")

    summary = client.get("/transactions/stats/summary", headers=auth_headers).json()
    assert Decimal(summary["total_income"]) == Decimal("300.00")
    assert Decimal(summary["total_expenses"]) == Decimal("120.25")
    assert Decimal(summary["net_income"]) == Decimal("179.75")
    assert summary["income_transactions"] == 1
    assert summary["expense_transactions"] == 1
    assert summary["transfer_transactions"] == 2


def test_transactions_are_private(client, auth_headers, other_headers, two_accounts):
    checking, _ = two_accounts
    row = create_transaction(client, auth_headers, checking["account_id"], "INCOME", "5")

    assert client.get(f"/transactions/{row['transaction_id']}", headers=other_headers).status_code == 404
    assert client.delete(f"/transactions/{row['transaction_id']}", headers=other_headers).status_code == 404
    assert client.get("/transactions/", headers=other_headers).json()["pagination"]["total"] == 0


def test_transfer_amount_must_survive_rounding(client, auth_headers, two_accounts):
    checking, savings = two_accounts

    too_small = _transfer(client, auth_headers, checking["account_id"], savings["account_id"], "0.004")
    assert too_small.status_code == 400
    assert client.get("/transactions/", headers=auth_headers,
                      params={"transaction_type": "TRANSFER"}).json()["pagination"]["total"] == 0

    # Half a cent rounds up
    half_cent = _transfer(client, auth_headers, checking["account_id"], savings["account_id"], "0.005")
    assert half_cent.status_code == 201
    assert Decimal(half_cent.json()["from_transaction"]["amount"]) == Decimal("0.01")


def test_transaction_amounts_round_half_up(client, auth_headers, two_accounts):
    checking, _ = two_accounts
    row = create_transaction(client, auth_headers, checking["account_id"], "EXPENSE", "2.125")
    assert Decimal(row["amount"]) == Decimal("2.13")

    updated = client.put(f"/transactions/{row['transaction_id']}", headers=auth_headers, json={"amount": "4.445"})
    assert Decimal(updated.json()["amount"]) == Decimal("4.45")

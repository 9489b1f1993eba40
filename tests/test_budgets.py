from datetime import date, timedelta
from decimal import Decimal

from fintrack.services.budget_period import month_window
from tests.conftest import category_named, create_account, create_transaction


def _create_budget(client, headers, category_id, amount="1000", period="monthly", **extra):
    payload = {"category_id": category_id, "amount": amount, "period": period}
    payload.update(extra)
    return client.post("/budgets/", headers=headers, json=payload)


def test_budget_tracks_spending_in_current_month(client, auth_headers):
    account = create_account(client, auth_headers)
    food = category_named(client, auth_headers, "Food & Dining")
    create_transaction(client, auth_headers, account["account_id"], "EXPENSE", "850", category_id=food["category_id"])
    # Outside the current month
    last_month = month_window(date.today())[0] - timedelta(days=1)
    create_transaction(client, auth_headers, account["account_id"], "EXPENSE", "500",
                       category_id=food["category_id"], transaction_date=last_month.isoformat())

    response = _create_budget(client, auth_headers, food["category_id"])
    assert response.status_code == 201
    budget = response.json()
    assert budget["category_name"] == "Food & Dining"
    assert Decimal(budget["spent"]) == Decimal("850.00")
    assert Decimal(budget["remaining"]) == Decimal("150.00")
    assert Decimal(budget["percentage_used"]) == Decimal("85.00")
    assert budget["status"] == "warning"
    assert budget["is_over_budget"] is False

    start, end = month_window(date.today())
    assert budget["current_period"] == {"start_date": start.isoformat(), "end_date": end.isoformat()}


def test_deleted_expenses_do_not_count(client, auth_headers):
    account = create_account(client, auth_headers)
    food = category_named(client, auth_headers, "Food & Dining")
    row = create_transaction(client, auth_headers, account["account_id"], "EXPENSE", "1050",
                             category_id=food["category_id"])

    budget = _create_budget(client, auth_headers, food["category_id"]).json()
    assert budget["status"] == "over"

    client.delete(f"/transactions/{row['transaction_id']}", headers=auth_headers)
    refreshed = client.get(f"/budgets/{budget['budget_id']}", headers=auth_headers).json()
    assert Decimal(refreshed["spent"]) == Decimal("0.00")
    assert refreshed["status"] == "good"


def test_budget_requires_own_expense_category(client, auth_headers, other_headers):
    salary = category_named(client, auth_headers, "Salary")
    income = _create_budget(client, auth_headers, salary["category_id"])
    assert income.status_code == 400
    assert income.json() == {"error": "Invalid category or category must be of type expense"}

    bobs = category_named(client, other_headers, "Travel")
    foreign = _create_budget(client, auth_headers, bobs["category_id"])
    assert foreign.status_code == 400


def test_one_active_budget_per_category_and_period(client, auth_headers):
    food = category_named(client, auth_headers, "Food & Dining")
    first = _create_budget(client, auth_headers, food["category_id"]).json()

    duplicate = _create_budget(client, auth_headers, food["category_id"])
    assert duplicate.status_code == 409
    assert duplicate.json() == {"error": "Active budget already exists for this category and period"}

    # Different period or an inactive budget is fine
    assert _create_budget(client, auth_headers, food["category_id"], period="yearly").status_code == 201
    assert _create_budget(client, auth_headers, food["category_id"], is_active=False).status_code == 201

    # Updating the active one does not clash with itself
    updated = client.put(f"/budgets/{first['budget_id']}", headers=auth_headers, json={"amount": "1200"})
    assert updated.status_code == 200
    assert Decimal(updated.json()["amount"]) == Decimal("1200.00")


def test_reactivating_a_duplicate_conflicts(client, auth_headers):
    food = category_named(client, auth_headers, "Food & Dining")
    _create_budget(client, auth_headers, food["category_id"])
    paused = _create_budget(client, auth_headers, food["category_id"], is_active=False).json()

    response = client.put(f"/budgets/{paused['budget_id']}", headers=auth_headers, json={"is_active": True})
    assert response.status_code == 409


def test_custom_budget_dates(client, auth_headers):
    account = create_account(client, auth_headers)
    travel = category_named(client, auth_headers, "Travel")
    start = date.today() - timedelta(days=10)
    create_transaction(client, auth_headers, account["account_id"], "EXPENSE", "40",
                       category_id=travel["category_id"], transaction_date=(start - timedelta(days=1)).isoformat())
    create_transaction(client, auth_headers, account["account_id"], "EXPENSE", "60",
                       category_id=travel["category_id"], transaction_date=start.isoformat())

    missing_start = _create_budget(client, auth_headers, travel["category_id"], period="custom")
    assert missing_start.status_code == 400

    backwards = _create_budget(client, auth_headers, travel["category_id"], period="custom",
                               start_date=start.isoformat(), end_date=(start - timedelta(days=1)).isoformat())
    assert backwards.status_code == 400

    budget = _create_budget(client, auth_headers, travel["category_id"], amount="100", period="custom",
                            start_date=start.isoformat()).json()
    assert Decimal(budget["spent"]) == Decimal("60.00")
    assert budget["current_period"]["start_date"] == start.isoformat()
    assert budget["current_period"]["end_date"] == date.today().isoformat()

    bad_update = client.put(f"/budgets/{budget['budget_id']}", headers=auth_headers,
                            json={"end_date": (start - timedelta(days=5)).isoformat()})
    assert bad_update.status_code == 400


def test_list_budgets_with_filters(client, auth_headers):
    food = category_named(client, auth_headers, "Food & Dining")
    travel = category_named(client, auth_headers, "Travel")
    _create_budget(client, auth_headers, food["category_id"])
    _create_budget(client, auth_headers, travel["category_id"], period="yearly")
    _create_budget(client, auth_headers, travel["category_id"], is_active=False)

    assert len(client.get("/budgets/", headers=auth_headers).json()) == 3
    assert len(client.get("/budgets/", headers=auth_headers, params={"period": "monthly"}).json()) == 2
    assert len(client.get("/budgets/", headers=auth_headers, params={"is_active": "true"}).json()) == 2


def test_budget_performance(client, auth_headers):
    account = create_account(client, auth_headers)
    food = category_named(client, auth_headers, "Food & Dining")
    travel = category_named(client, auth_headers, "Travel")
    create_transaction(client, auth_headers, account["account_id"], "EXPENSE", "300", category_id=food["category_id"])
    create_transaction(client, auth_headers, account["account_id"], "EXPENSE", "250", category_id=travel["category_id"])
    _create_budget(client, auth_headers, food["category_id"], amount="1000")
    _create_budget(client, auth_headers, travel["category_id"], amount="200")
    _create_budget(client, auth_headers, travel["category_id"], amount="5000", period="yearly")

    performance = client.get("/budgets/stats/performance", headers=auth_headers).json()
    overall = performance["overall_stats"]
    assert overall["total_budgets"] == 2
    assert Decimal(overall["total_budget"]) == Decimal("1200.00")
    assert Decimal(overall["total_spent"]) == Decimal("550.00")
    assert Decimal(overall["total_remaining"]) == Decimal("650.00")
    assert Decimal(overall["overall_percentage_used"]) == Decimal("45.83")
    assert overall["budgets_over_limit"] == 1


def test_delete_budget_is_permanent(client, auth_headers, other_headers):
    food = category_named(client, auth_headers, "Food & Dining")
    budget = _create_budget(client, auth_headers, food["category_id"]).json()

    assert client.delete(f"/budgets/{budget['budget_id']}", headers=other_headers).status_code == 404

    response = client.delete(f"/budgets/{budget['budget_id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"message": "Budget deleted successfully"}
    assert client.get(f"/budgets/{budget['budget_id']}", headers=auth_headers).status_code == 404
    assert client.delete(f"/budgets/{budget['budget_id']}", headers=auth_headers).status_code == 404

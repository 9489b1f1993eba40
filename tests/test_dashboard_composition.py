from datetime import date
from decimal import Decimal

from fintrack.services.dashboard import bucket_totals, classify_account, net_worth, trailing_months


def test_classification_is_exact_and_case_sensitive():
    assert classify_account("Checking") == "cash"
    assert classify_account("Savings") == "cash"
    assert classify_account("Brokerage") == "investment"
    assert classify_account("Loan") == "liability"
    assert classify_account("checking") is None
    assert classify_account("Crypto Wallet") is None


def test_liabilities_are_summed_as_absolute_values():
    balances = [
        {"account_type": "Checking", "current_balance": Decimal("1000.00")},
        {"account_type": "Investment", "current_balance": Decimal("500.00")},
        {"account_type": "Credit", "current_balance": Decimal("-300.00")},
        {"account_type": "Other", "current_balance": Decimal("999.00")},
    ]
    totals = bucket_totals(balances)
    assert totals == {
        "cash": Decimal("1000.00"),
        "investment": Decimal("500.00"),
        "liability": Decimal("300.00"),
    }
    assert net_worth(totals, Decimal("250.00")) == Decimal("1450.00")


def test_trailing_months_wrap_the_year():
    months = trailing_months(date(2024, 2, 10))
    assert [m[0] for m in months] == ["2023-09", "2023-10", "2023-11", "2023-12", "2024-01", "2024-02"]
    assert months[-1][1] == date(2024, 2, 1)
    assert months[-1][2] == date(2024, 2, 29)

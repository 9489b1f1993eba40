import subprocess
import time
import json
import os
import signal
import requests
import random
from datetime import date, timedelta
from faker import Faker

# --- Configuration ---
BASE_URL = os.environ.get("FINTRACK_URL", "http://127.0.0.1:8000")
UVICORN_COMMAND = ["uvicorn", "fintrack.main:app"]

fake = Faker()
session_headers = {}


# --- Helper Function for API Requests ---
def run_api_request(method: str, endpoint: str, data: dict = None):
    """Makes an API request and returns the JSON response."""
    url = f"{BASE_URL}{endpoint}"
    try:
        # The default json encoder in requests cannot handle Decimal or date
        json_data = json.dumps(data, default=str) if data else None
        headers = dict(session_headers)
        if json_data:
            headers['Content-Type'] = 'application/json'
        response = requests.request(method, url, data=json_data, headers=headers, timeout=10)
        response.raise_for_status()
        if not response.text:
            return None
        return response.json()
    except requests.exceptions.HTTPError as e:
        print(f"Error: HTTP {e.response.status_code} for {url}\nResponse: {e.response.text}")
        return None
    except requests.exceptions.RequestException as e:
        print(f"An unexpected error occurred: {e}")
        return None


def login_or_register(email: str, username: str, password: str) -> bool:
    print("--- Ensuring User Exists ---")
    auth = run_api_request("POST", "/auth/login", {"email": email, "password": password})
    if auth is None:
        auth = run_api_request("POST", "/auth/register", {"username": username, "email": email, "password": password})
    if auth is None:
        return False
    session_headers["Authorization"] = f"Bearer {auth['token']}"
    return True


def seed_accounts():
    print("--- Seeding Accounts ---")
    accounts = {}
    for account_type, name in [("Checking", "Main Checking"), ("Savings", "Emergency Fund"),
                               ("Loan", "Car Loan"), ("Brokerage", "Brokerage")]:
        initial = -round(random.uniform(5000, 15000), 2) if account_type == "Loan" else round(random.uniform(500, 20000), 2)
        account = run_api_request("POST", "/accounts/", {
            "account_name": name, "account_type": account_type, "initial_balance": initial
        })
        if account:
            accounts[account_type] = account
    return accounts


def seed_transactions(accounts):
    print("--- Seeding Transactions ---")
    categories = run_api_request("GET", "/categories/") or []
    income = [c for c in categories if c["category_type"] == "Income"]
    expense = [c for c in categories if c["category_type"] == "Expense"]
    checking = accounts.get("Checking")
    if not checking or not income or not expense:
        return expense

    for _ in range(60):
        is_income = random.random() < 0.2
        category = random.choice(income if is_income else expense)
        run_api_request("POST", "/transactions/", {
            "account_id": checking["account_id"],
            "category_id": category["category_id"],
            "transaction_type": "INCOME" if is_income else "EXPENSE",
            "amount": round(random.uniform(1500, 4000) if is_income else random.uniform(5, 300), 2),
            "description": fake.sentence(nb_words=4),
            "transaction_date": fake.date_between(start_date="-6M", end_date="today").isoformat(),
        })

    if accounts.get("Savings"):
        run_api_request("POST", "/transactions/transfer", {
            "from_account_id": checking["account_id"],
            "to_account_id": accounts["Savings"]["account_id"],
            "amount": 300,
            "transaction_date": (date.today() - timedelta(days=2)).isoformat(),
        })
    return expense


def seed_budgets(expense_categories):
    print("--- Seeding Budgets ---")
    for category in random.sample(expense_categories, min(3, len(expense_categories))):
        run_api_request("POST", "/budgets/", {
            "category_id": category["category_id"],
            "amount": random.choice([200, 400, 600]),
            "period": "monthly",
        })


def seed_trades(accounts):
    print("--- Seeding Trades ---")
    brokerage = accounts.get("Brokerage")
    if not brokerage:
        return
    for ticker in ["TCS.NS", "INFY.NS"]:
        quantity = random.randint(5, 20)
        run_api_request("POST", "/portfolio/trades", {
            "account_id": brokerage["account_id"], "ticker_symbol": ticker, "trade_type": "BUY",
            "quantity": quantity, "price_per_share": round(random.uniform(1000, 4000), 2),
        })
        run_api_request("POST", "/portfolio/trades", {
            "account_id": brokerage["account_id"], "ticker_symbol": ticker, "trade_type": "SELL",
            "quantity": quantity // 2, "price_per_share": round(random.uniform(1000, 4000), 2),
        })


def main():
    """Starts the server, seeds a demo user through the API, and shuts down the server."""

    print("--- Upgrading database with Alembic ---")
    try:
        subprocess.run(["alembic", "upgrade", "head"], check=True, capture_output=True, text=True)
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        print(f"Error during database upgrade: {e}")
        if hasattr(e, 'stderr') and e.stderr:
            print(e.stderr)
        return

    server_process = subprocess.Popen(UVICORN_COMMAND)
    time.sleep(5)
    print(f"Server started with PID: {server_process.pid}")

    try:
        if not login_or_register("testuser@example.com", "testuser", "aStrongPassword123"):
            print("Could not authenticate, aborting.")
            return

        accounts = seed_accounts()
        expense_categories = seed_transactions(accounts)
        seed_budgets(expense_categories)
        seed_trades(accounts)

        summary = run_api_request("GET", "/dashboard/summary")
        if summary:
            print(f"Net worth after seeding: {summary['net_worth']}")

        print("\n--- Seeding Complete ---")

    finally:
        if server_process:
            print("\n--- Shutting down server ---")
            os.kill(server_process.pid, signal.SIGTERM)
            server_process.wait()
            print("Server shut down.")


if __name__ == "__main__":
    main()

import sys
import os
import random
from sqlalchemy.orm import Session
from datetime import date, timedelta
from decimal import Decimal
from faker import Faker

# Add the project root to the Python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from fintrack.db.core import session_local, init_db, UserDB, CategoryDB, CategoryType
from fintrack.db.reference_data import seed_reference_data
from fintrack.crud import crud_account, crud_budget, crud_portfolio, crud_transaction, crud_user
from fintrack.models.account import AccountCreate
from fintrack.models.budget import BudgetCreate, BudgetPeriodEnum
from fintrack.models.portfolio import StockTradeCreate, TradeTypeEnum
from fintrack.models.transaction import TransactionCreate, TransactionTypeEnum, TransferCreate
from fintrack.models.user import UserRegister

fake = Faker()

DEMO_PASSWORD = "password123"


def _categories(db: Session, user_id: int, category_type: CategoryType):
    return db.query(CategoryDB).filter(
        CategoryDB.user_id == user_id,
        CategoryDB.category_type == category_type,
        CategoryDB.deleted_at.is_(None)
    ).all()


def seed_user(db: Session, index: int) -> None:
    username = f"{fake.user_name().replace('.', '_')[:40]}_{index}"
    user = crud_user.create_db_user(db, UserRegister(
        username=username, email=f"{username}@example.com", password=DEMO_PASSWORD
    ))
    print(f"Created user {user.username} (password: {DEMO_PASSWORD})")

    # 1. Accounts
    accounts = {}
    for account_type, name, low, high in [
        ("Checking", "Main Checking", 500, 5000),
        ("Savings", "Emergency Fund", 1000, 20000),
        ("Credit", "Rewards Card", -3000, 0),
        ("Brokerage", "Brokerage", 0, 2000),
    ]:
        accounts[account_type] = crud_account.create_db_account(db, user.user_id, AccountCreate(
            account_name=name,
            account_type=account_type,
            initial_balance=Decimal(random.uniform(low, high)).quantize(Decimal("0.01")),
        ))

    # 2. Transactions over the last six months
    income_categories = _categories(db, user.user_id, CategoryType.INCOME)
    expense_categories = _categories(db, user.user_id, CategoryType.EXPENSE)
    checking = accounts["Checking"]
    for _ in range(80):
        is_income = random.random() < 0.2
        category = random.choice(income_categories if is_income else expense_categories)
        crud_transaction.create_db_transaction(db, user.user_id, TransactionCreate(
            account_id=checking.account_id,
            category_id=category.category_id,
            transaction_type=TransactionTypeEnum.INCOME if is_income else TransactionTypeEnum.EXPENSE,
            amount=Decimal(random.uniform(1500, 4000) if is_income else random.uniform(5, 300)).quantize(Decimal("0.01")),
            description=fake.sentence(nb_words=4),
            transaction_date=fake.date_between(start_date="-6M", end_date="today"),
        ))

    # 3. A transfer into savings
    crud_transaction.create_transfer(db, user.user_id, TransferCreate(
        from_account_id=checking.account_id,
        to_account_id=accounts["Savings"].account_id,
        amount=Decimal("250.00"),
        transaction_date=date.today() - timedelta(days=3),
    ))

    # 4. Budgets for a few expense categories
    for category in random.sample(expense_categories, 3):
        crud_budget.create_db_budget(db, user.user_id, BudgetCreate(
            category_id=category.category_id,
            amount=Decimal(random.choice([200, 400, 600])),
            period=BudgetPeriodEnum.MONTHLY,
        ))

    # 5. Trades
    for ticker in random.sample(["RELIANCE.NS", "TCS.NS", "INFY.NS", "ITC.NS"], 2):
        buy_qty = Decimal(random.randint(5, 20))
        crud_portfolio.create_db_trade(db, user.user_id, StockTradeCreate(
            account_id=accounts["Brokerage"].account_id,
            ticker_symbol=ticker,
            trade_type=TradeTypeEnum.BUY,
            quantity=buy_qty,
            price_per_share=Decimal(random.uniform(100, 3000)).quantize(Decimal("0.01")),
            trade_date=fake.date_between(start_date="-6M", end_date="-1M"),
        ))
        crud_portfolio.create_db_trade(db, user.user_id, StockTradeCreate(
            account_id=accounts["Brokerage"].account_id,
            ticker_symbol=ticker,
            trade_type=TradeTypeEnum.SELL,
            quantity=(buy_qty / 2).quantize(Decimal("1")),
            price_per_share=Decimal(random.uniform(100, 3000)).quantize(Decimal("0.01")),
            trade_date=fake.date_between(start_date="-1M", end_date="today"),
        ))


def seed_database(user_count: int = 3):
    """
    Creates the tables, the reference data and a few demo users.
    """
    init_db()
    db: Session = session_local()

    try:
        seed_reference_data(db)

        # Check if data exists to prevent duplicate seeding
        if db.query(UserDB).count() > 0:
            print("Database appears to be already seeded. Exiting.")
            return

        print("Seeding database with sample data...")
        for i in range(user_count):
            print(f"--- Seeding user {i + 1}/{user_count} ---")
            seed_user(db, i + 1)

        print("Successfully seeded database.")

    except Exception as e:
        print(f"An error occurred: {e}")
        import traceback
        traceback.print_exc()
        db.rollback()
    finally:
        db.close()


if __name__ == "__main__":
    seed_database()

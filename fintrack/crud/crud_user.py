from sqlalchemy.orm import Session
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from fintrack.db.core import (
    UserDB, AccountDB, CategoryDB, TransactionDB, StockTradeDB, TransactionType,
    query_active, transaction_scope,
)
from fintrack.errors import AuthError, ConflictError, NotFoundError
from fintrack.logging_config import get_logger
from fintrack.models.user import UserRegister, UserLogin, UserUpdate, UserStats
from fintrack.services.auth import hash_password, verify_password
from fintrack.services.budget_period import month_window
from fintrack.services.ledger import round_money

logger = get_logger(__name__)


# ===== DATABASE OPERATIONS =====

def create_db_user(db: Session, user_data: UserRegister) -> UserDB:
    """Register a user and give them a copy of every template category"""

    # Check if email already exists
    if query_active(db, UserDB).filter(UserDB.email == user_data.email).first():
        raise ConflictError("Email already registered")

    # Check if username already exists
    if query_active(db, UserDB).filter(UserDB.username == user_data.username).first():
        raise ConflictError("Username already taken")

    db_user = UserDB(
        username=user_data.username,
        email=user_data.email,
        password_hash=hash_password(user_data.password),
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow(),
    )

    with transaction_scope(db):
        db.add(db_user)
        db.flush()

        templates = query_active(db, CategoryDB).filter(CategoryDB.user_id.is_(None)).all()
        for template in templates:
            db.add(CategoryDB(
                user_id=db_user.user_id,
                category_name=template.category_name,
                category_type=template.category_type,
            ))

    db.refresh(db_user)
    logger.info(f"Registered user {db_user.user_id} with {len(templates)} starter categories")
    return db_user


def authenticate_user(db: Session, credentials: UserLogin) -> UserDB:
    """Return the user matching the credentials or raise AuthError"""
    db_user = query_active(db, UserDB).filter(UserDB.email == credentials.email).first()
    if db_user is None or not verify_password(credentials.password, db_user.password_hash):
        raise AuthError("Invalid email or password")
    return db_user


def read_db_user(db: Session, user_id: int) -> Optional[UserDB]:
    return query_active(db, UserDB).filter(UserDB.user_id == user_id).first()


def update_db_user(db: Session, user_id: int, user_updates: UserUpdate) -> UserDB:
    """Update username and/or email"""

    db_user = read_db_user(db, user_id)
    if db_user is None:
        raise NotFoundError("User not found")

    # Check for email uniqueness if email is being updated
    if user_updates.email and user_updates.email != db_user.email:
        existing_email = query_active(db, UserDB).filter(
            UserDB.email == user_updates.email,
            UserDB.user_id != user_id
        ).first()
        if existing_email:
            raise ConflictError("Email already registered")

    # Check for username uniqueness if username is being updated
    if user_updates.username and user_updates.username != db_user.username:
        existing_username = query_active(db, UserDB).filter(
            UserDB.username == user_updates.username,
            UserDB.user_id != user_id
        ).first()
        if existing_username:
            raise ConflictError("Username already taken")

    update_data = user_updates.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        setattr(db_user, field, value)
    db_user.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(db_user)
    logger.info(f"Updated profile of user {user_id}")
    return db_user


def get_user_stats(db: Session, user_id: int, today: Optional[date] = None) -> UserStats:
    """Counts for the profile page; transaction figures cover the current month"""
    today = today or date.today()
    month_start, month_end = month_window(today)

    total_accounts = query_active(db, AccountDB).filter(AccountDB.user_id == user_id).count()
    total_categories = query_active(db, CategoryDB).filter(CategoryDB.user_id == user_id).count()
    total_trades = query_active(db, StockTradeDB).filter(StockTradeDB.user_id == user_id).count()

    month_rows = query_active(db, TransactionDB).filter(
        TransactionDB.user_id == user_id,
        TransactionDB.transaction_date >= month_start,
        TransactionDB.transaction_date <= month_end,
    ).all()

    income = sum((t.amount for t in month_rows if t.transaction_type == TransactionType.INCOME), Decimal(0))
    expenses = sum((t.amount for t in month_rows if t.transaction_type == TransactionType.EXPENSE), Decimal(0))

    return UserStats(
        total_accounts=total_accounts,
        monthly_transactions=len(month_rows),
        monthly_income=round_money(income),
        monthly_expenses=round_money(expenses),
        total_categories=total_categories,
        total_trades=total_trades,
    )

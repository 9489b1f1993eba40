from sqlalchemy.orm import Session
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from fintrack.db.core import (
    BudgetDB, BudgetPeriod, CategoryDB, CategoryType, TransactionDB, TransactionType, query_active,
)
from fintrack.errors import DuplicateActiveBudgetError, InvalidCategoryError, NotFoundError, ValidationError
from fintrack.logging_config import get_logger
from fintrack.models.budget import BudgetCreate, BudgetUpdate, BudgetPeriodEnum, BudgetPerformance, OverallBudgetStats
from fintrack.services.budget_period import evaluate, resolve_period_window
from fintrack.services.ledger import round_money

logger = get_logger(__name__)


# ===== VALIDATION HELPERS =====

def require_expense_category(db: Session, category_id: int, user_id: int) -> CategoryDB:
    db_category = query_active(db, CategoryDB).filter(
        CategoryDB.category_id == category_id,
        CategoryDB.user_id == user_id,
        CategoryDB.category_type == CategoryType.EXPENSE
    ).first()
    if db_category is None:
        raise InvalidCategoryError("Invalid category or category must be of type expense")
    return db_category


def check_no_active_duplicate(db: Session, user_id: int, category_id: int, period: BudgetPeriod,
                              exclude_budget_id: Optional[int] = None) -> None:
    """At most one active budget per (category, period)"""
    query = db.query(BudgetDB).filter(
        BudgetDB.user_id == user_id,
        BudgetDB.category_id == category_id,
        BudgetDB.period == period,
        BudgetDB.is_active.is_(True)
    )
    if exclude_budget_id is not None:
        query = query.filter(BudgetDB.budget_id != exclude_budget_id)
    if query.first():
        raise DuplicateActiveBudgetError("Active budget already exists for this category and period")


# ===== EVALUATION =====

def compute_spent(db: Session, budget: BudgetDB, start: date, end: date) -> Decimal:
    """Non-deleted EXPENSE amounts in the budget's category within [start, end]"""
    rows = query_active(db, TransactionDB).filter(
        TransactionDB.user_id == budget.user_id,
        TransactionDB.category_id == budget.category_id,
        TransactionDB.transaction_type == TransactionType.EXPENSE,
        TransactionDB.transaction_date >= start,
        TransactionDB.transaction_date <= end
    ).all()
    return round_money(sum((row.amount for row in rows), Decimal(0)))


def evaluate_budget(db: Session, budget: BudgetDB, reference_date: Optional[date] = None) -> dict:
    """Budget fields plus spent/remaining/percentage/status for its window"""
    reference_date = reference_date or date.today()
    start, end = resolve_period_window(budget, reference_date)
    result = evaluate(budget.amount, compute_spent(db, budget, start, end))

    return {
        "budget_id": budget.budget_id,
        "user_id": budget.user_id,
        "category_id": budget.category_id,
        "category_name": budget.category.category_name,
        "amount": budget.amount,
        "period": budget.period.value,
        "start_date": budget.start_date,
        "end_date": budget.end_date,
        "is_active": budget.is_active,
        "created_at": budget.created_at,
        "updated_at": budget.updated_at,
        "spent": result.spent,
        "remaining": result.remaining,
        "percentage_used": result.percentage_used,
        "is_over_budget": result.is_over_budget,
        "status": result.status,
        "current_period": {"start_date": start, "end_date": end},
    }


# ===== DATABASE OPERATIONS =====

def create_db_budget(db: Session, user_id: int, budget_data: BudgetCreate) -> BudgetDB:
    require_expense_category(db, budget_data.category_id, user_id)
    period = BudgetPeriod(budget_data.period.value)
    if budget_data.is_active:
        check_no_active_duplicate(db, user_id, budget_data.category_id, period)

    db_budget = BudgetDB(
        user_id=user_id,
        category_id=budget_data.category_id,
        amount=budget_data.amount,
        period=period,
        start_date=budget_data.start_date or date.today(),
        end_date=budget_data.end_date,
        is_active=budget_data.is_active,
        created_at=datetime.utcnow()
    )
    db.add(db_budget)
    db.commit()
    db.refresh(db_budget)
    logger.info(f"Created {period.value} budget {db_budget.budget_id} for category {db_budget.category_id}")
    return db_budget


def read_db_budget(db: Session, budget_id: int, user_id: int) -> Optional[BudgetDB]:
    return db.query(BudgetDB).filter(
        BudgetDB.budget_id == budget_id,
        BudgetDB.user_id == user_id
    ).first()


def read_db_budgets(db: Session, user_id: int, period: Optional[BudgetPeriodEnum] = None,
                    is_active: Optional[bool] = None) -> List[BudgetDB]:
    query = db.query(BudgetDB).filter(BudgetDB.user_id == user_id)
    if period:
        query = query.filter(BudgetDB.period == BudgetPeriod(period.value))
    if is_active is not None:
        query = query.filter(BudgetDB.is_active.is_(is_active))
    return query.order_by(BudgetDB.created_at.desc(), BudgetDB.budget_id.desc()).all()


def update_db_budget(db: Session, budget_id: int, user_id: int, budget_updates: BudgetUpdate) -> BudgetDB:
    db_budget = read_db_budget(db, budget_id, user_id)
    if db_budget is None:
        raise NotFoundError("Budget not found")

    update_data = budget_updates.model_dump(exclude_unset=True)

    category_id = update_data.get("category_id") or db_budget.category_id
    if update_data.get("category_id"):
        require_expense_category(db, category_id, user_id)

    period = BudgetPeriod(update_data["period"].value) if update_data.get("period") else db_budget.period
    is_active = update_data["is_active"] if update_data.get("is_active") is not None else db_budget.is_active
    if is_active:
        check_no_active_duplicate(db, user_id, category_id, period, exclude_budget_id=budget_id)

    start_date = update_data.get("start_date") or db_budget.start_date
    end_date = update_data["end_date"] if "end_date" in update_data else db_budget.end_date
    if end_date and end_date < start_date:
        raise ValidationError("end_date must not be before start_date")

    db_budget.category_id = category_id
    db_budget.period = period
    db_budget.is_active = is_active
    db_budget.start_date = start_date
    db_budget.end_date = end_date
    if update_data.get("amount") is not None:
        db_budget.amount = update_data["amount"]
    db_budget.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(db_budget)
    logger.info(f"Updated budget {budget_id}")
    return db_budget


def delete_db_budget(db: Session, budget_id: int, user_id: int) -> None:
    """Budgets are removed outright, they have no trash"""
    db_budget = read_db_budget(db, budget_id, user_id)
    if db_budget is None:
        raise NotFoundError("Budget not found")
    db.delete(db_budget)
    db.commit()
    logger.info(f"Deleted budget {budget_id}")


def get_budget_performance(db: Session, user_id: int, period: BudgetPeriodEnum = BudgetPeriodEnum.MONTHLY,
                           reference_date: Optional[date] = None) -> BudgetPerformance:
    """Totals across every active budget of one period"""
    evaluations = [
        evaluate_budget(db, budget, reference_date)
        for budget in read_db_budgets(db, user_id, period=period, is_active=True)
    ]

    total_budget = sum((e["amount"] for e in evaluations), Decimal(0))
    total_spent = sum((e["spent"] for e in evaluations), Decimal(0))
    overall = OverallBudgetStats(
        total_budget=round_money(total_budget),
        total_spent=round_money(total_spent),
        total_remaining=round_money(total_budget - total_spent),
        overall_percentage_used=round_money(total_spent / total_budget * 100) if total_budget else round_money(0),
        budgets_over_limit=sum(1 for e in evaluations if e["is_over_budget"]),
        total_budgets=len(evaluations),
    )
    return BudgetPerformance(overall_stats=overall, budgets=evaluations)

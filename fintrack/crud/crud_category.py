from sqlalchemy.orm import Session
from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from fintrack.db.core import (
    BudgetDB, CategoryDB, CategoryType, TransactionDB, TransactionType, query_active, query_deleted,
)
from fintrack.errors import CategoryTypeMismatchError, ConflictError, NotFoundError, NotDeletedError
from fintrack.logging_config import get_logger
from fintrack.models.category import CategoryCreate, CategoryUpdate, CategoryStats, CategorySpending, CategoryTypeEnum
from fintrack.services.ledger import round_money

logger = get_logger(__name__)


def _check_unique_name(db: Session, user_id: int, name: str, exclude_id: Optional[int] = None) -> None:
    query = query_active(db, CategoryDB).filter(
        CategoryDB.user_id == user_id,
        CategoryDB.category_name == name
    )
    if exclude_id is not None:
        query = query.filter(CategoryDB.category_id != exclude_id)
    if query.first():
        raise ConflictError("Category with this name already exists")


def _check_type_change_allowed(db: Session, db_category: CategoryDB, new_type: CategoryType) -> None:
    """A category that live transactions or any budget point at keeps its type"""
    if new_type == db_category.category_type:
        return

    in_use = query_active(db, TransactionDB).filter(
        TransactionDB.category_id == db_category.category_id
    ).first() is not None
    budgeted = db.query(BudgetDB).filter(
        BudgetDB.category_id == db_category.category_id
    ).first() is not None

    if in_use or budgeted:
        raise CategoryTypeMismatchError(
            f"Category '{db_category.category_name}' is used by transactions or budgets "
            f"and cannot change type to {new_type.value}"
        )


# ===== DATABASE OPERATIONS =====

def create_db_category(db: Session, user_id: int, category_data: CategoryCreate) -> CategoryDB:
    _check_unique_name(db, user_id, category_data.category_name)

    db_category = CategoryDB(
        user_id=user_id,
        category_name=category_data.category_name,
        category_type=CategoryType(category_data.category_type.value),
        created_at=datetime.utcnow()
    )
    db.add(db_category)
    db.commit()
    db.refresh(db_category)
    logger.info(f"Created category {db_category.category_id} for user {user_id}")
    return db_category


def read_db_category(db: Session, category_id: int, user_id: int) -> Optional[CategoryDB]:
    return query_active(db, CategoryDB).filter(
        CategoryDB.category_id == category_id,
        CategoryDB.user_id == user_id
    ).first()


def read_db_categories(db: Session, user_id: int, category_type: Optional[CategoryTypeEnum] = None) -> List[CategoryDB]:
    """The caller's categories, grouped by type then alphabetical"""
    query = query_active(db, CategoryDB).filter(CategoryDB.user_id == user_id)
    if category_type:
        query = query.filter(CategoryDB.category_type == CategoryType(category_type.value))
    return query.order_by(CategoryDB.category_type, CategoryDB.category_name).all()


def read_deleted_categories(db: Session, user_id: int) -> List[CategoryDB]:
    return query_deleted(db, CategoryDB).filter(
        CategoryDB.user_id == user_id
    ).order_by(CategoryDB.deleted_at.desc()).all()


def update_db_category(db: Session, category_id: int, user_id: int, category_updates: CategoryUpdate) -> CategoryDB:
    db_category = read_db_category(db, category_id, user_id)
    if db_category is None:
        raise NotFoundError("Category not found")

    if category_updates.category_name and category_updates.category_name != db_category.category_name:
        _check_unique_name(db, user_id, category_updates.category_name, exclude_id=category_id)

    if category_updates.category_type is not None:
        _check_type_change_allowed(db, db_category, CategoryType(category_updates.category_type.value))

    update_data = category_updates.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        if field == 'category_type':
            setattr(db_category, field, CategoryType(value.value))
        else:
            setattr(db_category, field, value)

    db.commit()
    db.refresh(db_category)
    logger.info(f"Updated category {category_id}")
    return db_category


def delete_db_category(db: Session, category_id: int, user_id: int) -> CategoryDB:
    db_category = read_db_category(db, category_id, user_id)
    if db_category is None:
        raise NotFoundError("Category not found")

    db_category.soft_delete()
    db.commit()
    db.refresh(db_category)
    logger.info(f"Soft-deleted category {category_id}")
    return db_category


def restore_db_category(db: Session, category_id: int, user_id: int) -> CategoryDB:
    db_category = query_deleted(db, CategoryDB).filter(
        CategoryDB.category_id == category_id,
        CategoryDB.user_id == user_id
    ).first()
    if db_category is None:
        if read_db_category(db, category_id, user_id) is not None:
            raise NotDeletedError("Category is not deleted")
        raise NotFoundError("Category not found")

    _check_unique_name(db, user_id, db_category.category_name, exclude_id=category_id)
    db_category.restore()
    db.commit()
    db.refresh(db_category)
    logger.info(f"Restored category {category_id}")
    return db_category


# ===== STATISTICS =====

def _category_transactions(db: Session, user_id: int, start_date: Optional[date], end_date: Optional[date]):
    query = query_active(db, TransactionDB).filter(TransactionDB.user_id == user_id)
    if start_date:
        query = query.filter(TransactionDB.transaction_date >= start_date)
    if end_date:
        query = query.filter(TransactionDB.transaction_date <= end_date)
    return query


def get_category_stats(db: Session, category_id: int, user_id: int,
                       start_date: Optional[date] = None, end_date: Optional[date] = None) -> CategoryStats:
    db_category = read_db_category(db, category_id, user_id)
    if db_category is None:
        raise NotFoundError("Category not found")

    amounts = [
        t.amount for t in _category_transactions(db, user_id, start_date, end_date)
        .filter(TransactionDB.category_id == category_id).all()
    ]
    total = sum(amounts, Decimal(0))

    return CategoryStats(
        category_id=db_category.category_id,
        category_name=db_category.category_name,
        category_type=db_category.category_type.value,
        transaction_count=len(amounts),
        total_amount=round_money(total),
        average_amount=round_money(total / len(amounts)) if amounts else round_money(0),
        min_amount=round_money(min(amounts)) if amounts else round_money(0),
        max_amount=round_money(max(amounts)) if amounts else round_money(0),
    )


def get_spending_by_category(db: Session, user_id: int, start_date: Optional[date] = None,
                             end_date: Optional[date] = None,
                             transaction_type: str = "EXPENSE") -> List[CategorySpending]:
    """Per-category totals of one transaction type, largest first"""
    rows = _category_transactions(db, user_id, start_date, end_date).filter(
        TransactionDB.transaction_type == TransactionType(transaction_type),
        TransactionDB.category_id.is_not(None)
    ).all()

    categories = {c.category_id: c for c in read_db_categories(db, user_id)}
    totals = defaultdict(lambda: [Decimal(0), 0])
    for row in rows:
        if row.category_id not in categories:
            continue
        totals[row.category_id][0] += row.amount
        totals[row.category_id][1] += 1

    spending = [
        CategorySpending(
            category_id=category_id,
            category_name=categories[category_id].category_name,
            category_type=categories[category_id].category_type.value,
            transaction_count=count,
            total_amount=round_money(total),
        )
        for category_id, (total, count) in totals.items()
    ]
    spending.sort(key=lambda s: s.total_amount, reverse=True)
    return spending

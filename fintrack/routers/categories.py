from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from fintrack.crud import crud_category
from fintrack.db.core import UserDB, get_db
from fintrack.models import category as category_models
from fintrack.models.transaction import TransactionTypeEnum
from fintrack.services.auth import get_current_user

router = APIRouter(
    prefix="/categories",
    tags=["categories"],
)


@router.post("/", response_model=category_models.CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    category: category_models.CategoryCreate,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    return crud_category.create_db_category(db=db, user_id=current_user.user_id, category_data=category)


@router.get("/", response_model=List[category_models.CategoryResponse])
def read_categories(
    category_type: Optional[category_models.CategoryTypeEnum] = None,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Retrieve the current user's categories, optionally only one type.
    """
    return crud_category.read_db_categories(db=db, user_id=current_user.user_id, category_type=category_type)


@router.get("/trash", response_model=List[category_models.CategoryResponse])
def read_deleted_categories(
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    return crud_category.read_deleted_categories(db=db, user_id=current_user.user_id)


@router.get("/stats/spending", response_model=List[category_models.CategorySpending])
def read_spending_by_category(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    transaction_type: TransactionTypeEnum = TransactionTypeEnum.EXPENSE,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Totals per category for one transaction type, largest first.
    """
    return crud_category.get_spending_by_category(
        db=db, user_id=current_user.user_id, start_date=start_date, end_date=end_date,
        transaction_type=transaction_type.value
    )


@router.get("/{category_id}", response_model=category_models.CategoryResponse)
def read_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    db_category = crud_category.read_db_category(db=db, category_id=category_id, user_id=current_user.user_id)
    if db_category is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return db_category


@router.get("/{category_id}/stats", response_model=category_models.CategoryStats)
def read_category_stats(
    category_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    return crud_category.get_category_stats(
        db=db, category_id=category_id, user_id=current_user.user_id, start_date=start_date, end_date=end_date
    )


@router.put("/{category_id}", response_model=category_models.CategoryResponse)
def update_category(
    category_id: int,
    category: category_models.CategoryUpdate,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    return crud_category.update_db_category(
        db=db, category_id=category_id, user_id=current_user.user_id, category_updates=category
    )


@router.delete("/{category_id}", response_model=category_models.CategoryResponse)
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Move a category to the trash. Transactions keep pointing at it.
    """
    return crud_category.delete_db_category(db=db, category_id=category_id, user_id=current_user.user_id)


@router.api_route("/{category_id}/restore", methods=["PUT", "POST"], response_model=category_models.CategoryResponse)
def restore_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    return crud_category.restore_db_category(db=db, category_id=category_id, user_id=current_user.user_id)

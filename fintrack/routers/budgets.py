from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional

from fintrack.crud import crud_budget
from fintrack.db.core import UserDB, get_db
from fintrack.models import budget as budget_models
from fintrack.services.auth import get_current_user

router = APIRouter(
    prefix="/budgets",
    tags=["budgets"],
)


@router.post("/", response_model=budget_models.BudgetResponse, status_code=status.HTTP_201_CREATED)
def create_budget(
    budget: budget_models.BudgetCreate,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Create a budget for one of the current user's expense categories.
    """
    db_budget = crud_budget.create_db_budget(db=db, user_id=current_user.user_id, budget_data=budget)
    return crud_budget.evaluate_budget(db, db_budget)


@router.get("/", response_model=List[budget_models.BudgetResponse])
def read_budgets(
    period: Optional[budget_models.BudgetPeriodEnum] = None,
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Retrieve budgets, each evaluated against its current period.
    """
    budgets = crud_budget.read_db_budgets(db=db, user_id=current_user.user_id, period=period, is_active=is_active)
    return [crud_budget.evaluate_budget(db, b) for b in budgets]


@router.get("/stats/performance", response_model=budget_models.BudgetPerformance)
def read_budget_performance(
    period: budget_models.BudgetPeriodEnum = budget_models.BudgetPeriodEnum.MONTHLY,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    return crud_budget.get_budget_performance(db=db, user_id=current_user.user_id, period=period)


@router.get("/{budget_id}", response_model=budget_models.BudgetResponse)
def read_budget(
    budget_id: int,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    db_budget = crud_budget.read_db_budget(db=db, budget_id=budget_id, user_id=current_user.user_id)
    if db_budget is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Budget not found")
    return crud_budget.evaluate_budget(db, db_budget)


@router.put("/{budget_id}", response_model=budget_models.BudgetResponse)
def update_budget(
    budget_id: int,
    budget: budget_models.BudgetUpdate,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    db_budget = crud_budget.update_db_budget(
        db=db, budget_id=budget_id, user_id=current_user.user_id, budget_updates=budget
    )
    return crud_budget.evaluate_budget(db, db_budget)


@router.delete("/{budget_id}")
def delete_budget(
    budget_id: int,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    crud_budget.delete_db_budget(db=db, budget_id=budget_id, user_id=current_user.user_id)
    return {"message": "Budget deleted successfully"}

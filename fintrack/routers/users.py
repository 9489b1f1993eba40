from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fintrack.crud import crud_user
from fintrack.db.core import UserDB, get_db
from fintrack.models import user as user_models
from fintrack.services.auth import get_current_user

router = APIRouter(
    prefix="/users",
    tags=["users"],
)


@router.get("/profile", response_model=user_models.UserResponse)
def read_profile(current_user: UserDB = Depends(get_current_user)):
    return current_user


@router.put("/profile", response_model=user_models.UserResponse)
def update_profile(
    user: user_models.UserUpdate,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Change username and/or email. Both must stay unique.
    """
    return crud_user.update_db_user(db=db, user_id=current_user.user_id, user_updates=user)


@router.get("/stats", response_model=user_models.UserStats)
def read_user_stats(
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Account, category and trade counts plus this month's transaction totals.
    """
    return crud_user.get_user_stats(db=db, user_id=current_user.user_id)

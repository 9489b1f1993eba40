from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fintrack.db.core import UserDB, get_db
from fintrack.models import dashboard as dashboard_models
from fintrack.services import dashboard as dashboard_service
from fintrack.services.auth import get_current_user

router = APIRouter(
    prefix="/dashboard",
    tags=["dashboard"],
)


@router.get("/summary", response_model=dashboard_models.DashboardSummary)
def read_dashboard_summary(
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Net worth, balances, recent activity and spending trends in one call.
    """
    return dashboard_service.build_summary(db=db, user_id=current_user.user_id)

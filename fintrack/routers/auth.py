from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from fintrack.crud import crud_user
from fintrack.db.core import get_db
from fintrack.models import user as user_models
from fintrack.services.auth import create_access_token

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/register", response_model=user_models.AuthResponse, status_code=status.HTTP_201_CREATED)
def register(user: user_models.UserRegister, db: Session = Depends(get_db)):
    """
    Create a user, seed their categories from the templates and log them in.
    """
    db_user = crud_user.create_db_user(db=db, user_data=user)
    return {
        "message": "User registered successfully",
        "token": create_access_token(db_user),
        "user": db_user,
    }


@router.post("/login", response_model=user_models.AuthResponse)
def login(credentials: user_models.UserLogin, db: Session = Depends(get_db)):
    """
    Exchange email and password for an access token.
    """
    db_user = crud_user.authenticate_user(db=db, credentials=credentials)
    return {
        "message": "Login successful",
        "token": create_access_token(db_user),
        "user": db_user,
    }

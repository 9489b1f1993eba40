"""Password hashing, JWT issuing and the ``get_current_user`` dependency."""
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, Request
from jwt import ExpiredSignatureError, InvalidTokenError as JWTInvalidTokenError
from sqlalchemy.orm import Session

from fintrack.config import get_settings
from fintrack.db.core import UserDB, get_db, query_active
from fintrack.errors import AuthError, InvalidTokenError
from fintrack.logging_config import get_logger

logger = get_logger(__name__)


# ===== PASSWORD HASHING UTILITIES =====

def hash_password(password: str) -> str:
    """Hash a password with bcrypt"""
    rounds = get_settings().bcrypt_rounds
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds)).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))


# ===== TOKENS =====

def create_access_token(user: UserDB) -> str:
    """Create a signed JWT identifying ``user``."""
    settings = get_settings()
    now = datetime.now(tz=timezone.utc)
    expires = now + timedelta(minutes=settings.jwt_expires_minutes)
    payload = {
        "sub": str(user.user_id),
        "email": user.email,
        "iat": int(now.timestamp()),
        "exp": int(expires.timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> int:
    """Return the user id carried by a token, or raise ``InvalidTokenError``."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError as exc:
        raise InvalidTokenError("Invalid or expired token") from exc
    except JWTInvalidTokenError as exc:
        raise InvalidTokenError("Invalid or expired token") from exc

    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidTokenError("Invalid or expired token") from exc


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization")
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_user(request: Request, db: Session = Depends(get_db)) -> UserDB:
    """
    Resolve the caller from ``Authorization: Bearer <token>``.

    Missing token is 401, a bad or expired one 403, and a token whose user
    no longer exists (or was deleted) 401.
    """
    token = _bearer_token(request)
    if token is None:
        raise AuthError("Access token required")

    user_id = decode_access_token(token)
    user = query_active(db, UserDB).filter(UserDB.user_id == user_id).first()
    if user is None:
        logger.info(f"Token presented for missing user {user_id}")
        raise AuthError("User not found")
    return user

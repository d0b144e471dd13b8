"""Password hashing, JWT access tokens, and user registration/login.

Uses bcrypt directly (not passlib) and python-jose for HS256 tokens.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import bcrypt
import structlog
from fastapi import HTTPException, status
from jose import JWTError, jwt

from scheduler.config import get_settings
from scheduler.domain.models import LoginRequest, RegisterRequest, User
from scheduler.repos.memory import UserRepository

logger = structlog.get_logger(__name__)


def hash_password(password: str) -> str:
    """Hash a plaintext password using bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a plaintext password against its bcrypt hash."""
    if not hashed:
        return False
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


def create_access_token(user_id: str, expires_delta: timedelta | None = None) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {"sub": user_id, "exp": expire, "iat": now, "type": "access"}
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def _unauthorized(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_token(token: str) -> str:
    """Decode an access token and return its subject (the user id).

    Raises:
        HTTPException(401): If the token is invalid, expired, or not an access token.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise _unauthorized()
    if payload.get("type") != "access" or not payload.get("sub"):
        raise _unauthorized()
    return payload["sub"]


def register_user(payload: RegisterRequest, user_repo: UserRepository) -> User:
    """Create a user account; raises ValidationError on a duplicate email."""
    user = User(
        name=payload.name.strip(),
        email=payload.email.strip().lower(),
        role=payload.role,
        password_hash=hash_password(payload.password),
    )
    user_repo.add(user)
    logger.info("user.registered", user_id=user.id, role=user.role.value)
    return user


def authenticate(payload: LoginRequest, user_repo: UserRepository) -> User:
    user = user_repo.get_by_email(payload.email)
    if user is None or not verify_password(payload.password, user.password_hash):
        logger.info("user.login_failed")
        raise _unauthorized("Invalid credentials")
    return user

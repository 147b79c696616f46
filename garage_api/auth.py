"""
Authentication helpers: password hashing, JWT tokens and the current-user
dependencies used by every protected route.
"""
from datetime import timedelta
from typing import Optional

import bcrypt
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from garage_api.config import get_settings
from garage_api.database import get_db
from garage_api.exceptions import AuthenticationError, PermissionDeniedError
from garage_api.models.user import User, UserStatus
from garage_api.utils import utcnow

settings = get_settings()

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.api_v1_prefix}/auth/login",
    auto_error=False,
)


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    """Check a plain password against its bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT carrying ``data`` plus an expiry."""
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def token_for(user: User) -> str:
    return create_access_token({"sub": str(user.id), "role": user.role.value})


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token to a user."""
    if not token:
        raise AuthenticationError("Not authenticated")

    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        user_pk = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise AuthenticationError("Could not validate credentials")

    user = await db.get(User, user_pk)
    if user is None or user.deleted_at is not None:
        raise AuthenticationError("Could not validate credentials")

    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """Reject users whose account is not active."""
    if current_user.status != UserStatus.ACTIVE:
        raise PermissionDeniedError("Account is not active")
    return current_user

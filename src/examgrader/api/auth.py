"""
Bearer-token authentication for the exam grading API.

Tokens are issued by the platform's identity service; this module only
decodes them (HS256, `sub` = user id) and resolves the user.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from examgrader.config.constants import JWT_ALGORITHM, ACCESS_TOKEN_EXPIRE_HOURS
from examgrader.config.settings import get_settings
from examgrader.core.models import UserRole
from examgrader.db import get_db, User
from examgrader.middleware.error_handler import set_user_context

# Security scheme
security = HTTPBearer(auto_error=False)


def create_access_token(user_id: str, expires_hours: int = ACCESS_TOKEN_EXPIRE_HOURS) -> str:
    """Create a JWT access token (tooling and tests)."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "exp": now + timedelta(hours=expires_hours),
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token."""
    try:
        settings = get_settings()
        return jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Get the current authenticated user."""
    if credentials is None:
        raise _unauthorized("Not authenticated")

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Invalid or expired token")

    user_id = payload.get("sub")
    if user_id is None:
        raise _unauthorized("Invalid token")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise _unauthorized("User not found")

    request.state.user_id = user.id
    set_user_context(user_id=user.id, email=user.email, username=user.name)
    return user


def require_roles(*roles: UserRole):
    """Dependency factory restricting an endpoint to the given roles."""

    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied for role " + current_user.role.value,
            )
        return current_user

    return dependency

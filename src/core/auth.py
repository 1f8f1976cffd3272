from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.orm import Session
from typing import Optional

from .config import settings
from .database import get_db
from ..domain.enums import UserRole
from ..services.repositories import User
from ..services.sql_repository import SqlUserRepository

security = HTTPBearer(auto_error=False)


class AuthContext:
    """Authenticated request context"""

    def __init__(self, user_id: str, role: UserRole):
        self.user_id = user_id
        self.role = role


def decode_jwt(token: str) -> dict:
    """Decode and validate JWT token"""
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[AuthContext]:
    """
    Extract authenticated user from JWT token

    Optional dependency - returns None if no token present
    """
    if not credentials:
        return None

    payload = decode_jwt(credentials.credentials)

    user_id = payload.get("sub")
    role = payload.get("role")

    if not user_id or not role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token claims",
        )

    try:
        role = UserRole(role)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Invalid role: {role}",
        )

    return AuthContext(user_id=user_id, role=role)


async def require_auth(
    auth: Optional[AuthContext] = Depends(get_current_user),
) -> AuthContext:
    """Require authentication - raises 401 if not authenticated"""
    if not auth:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth


async def get_actor(
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the authenticated user into its domain object"""
    user = SqlUserRepository(db).get_user(auth.user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown user: {auth.user_id}",
        )
    if user.role != auth.role:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Token role '{auth.role.value}' does not match user role '{user.role.value}'",
        )
    return user

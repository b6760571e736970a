"""
Authentication and authorization dependencies.

Provides FastAPI dependencies for:
- Resolving the calling athlete from the bearer token
- Role-based access control
- Resolving the caller's Guide record
"""
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from core.database import get_db
from core.exceptions import ForbiddenError, UnauthenticatedError
from core.security import decode_access_token
from models import Athlete, Guide

# Use auto_error=False to handle missing credentials manually and return 401 (not 403)
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> Athlete:
    """
    Get the current authenticated athlete from the JWT token.

    Raises UnauthenticatedError if the token is missing, invalid or does not
    resolve to an athlete.
    """
    if not credentials:
        raise UnauthenticatedError("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise UnauthenticatedError("Invalid authentication credentials")

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthenticatedError("Invalid token payload")

    try:
        user_id_uuid = UUID(user_id)
    except ValueError:
        raise UnauthenticatedError("Invalid user ID format")

    user = db.query(Athlete).filter(Athlete.id == user_id_uuid).first()
    if not user:
        raise UnauthenticatedError("User not found")

    return user


def require_role(role: str):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/admin-only")
        def admin_endpoint(user: Athlete = Depends(require_role("ADMIN"))):
            ...
    """
    def role_checker(current_user: Athlete = Depends(get_current_user)) -> Athlete:
        if not current_user.has_role(role):
            raise ForbiddenError(f"Access denied. Required role: {role}")
        return current_user

    return role_checker


def require_admin(
    current_user: Athlete = Depends(require_role("ADMIN"))
) -> Athlete:
    """Require the ADMIN role."""
    return current_user


def get_guide_for(db: Session, athlete: Athlete) -> Optional[Guide]:
    return db.query(Guide).filter(Guide.user_id == athlete.id).first()

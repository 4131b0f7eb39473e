# app/api/v1/deps.py

from typing import Optional
from uuid import UUID

import jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.core.security import decode_access_token
from app.db.database import get_db
from app.db.models import User
from app.services.identity_service import identity_service
from app.utils.exceptions import ForbiddenError, UnauthorizedError

security = HTTPBearer(auto_error=False)

# ============================================================================
# JWT Dependency
# ============================================================================

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Validate the bearer token and return the current user.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Unauthorized (missing token)")

    try:
        payload = decode_access_token(credentials.credentials)
        user_id = UUID(str(payload.get("sub") or payload.get("user_id")))
    except (jwt.PyJWTError, ValueError):
        raise UnauthorizedError("Unauthorized (invalid token)")

    user = identity_service.get_by_id(db, user_id)
    if not user:
        raise UnauthorizedError("User not found")

    if not user.is_active:
        raise ForbiddenError("User account is deactivated")

    return user

"""
FastAPI Authentication Dependencies
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from aeo.auth.config import get_auth_config
from aeo.auth.jwt import JWTError, verify_supabase_token
from aeo.auth.sync import sync_user_from_token
from aeo.database.models import User
from aeo.database.session import get_db

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

DEV_USER_ID = "dev-user"


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Get the current authenticated user.

    Validates the bearer JWT, syncs the user to the local DB, returns it.

    Raises:
        HTTPException 401: If not authenticated
        HTTPException 403: If the account was deleted
    """
    config = get_auth_config()

    if not config.auth_enabled:
        return _get_dev_user(db)

    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = verify_supabase_token(credentials.credentials)
    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = sync_user_from_token(db, payload)
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )
    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


def _get_dev_user(db: Session) -> User:
    """Get or create the local development user when auth is disabled."""
    user = db.query(User).filter(User.id == DEV_USER_ID).first()
    if user is None:
        user = User(id=DEV_USER_ID, email="dev@aeo.local", first_name="Development", is_admin=True)
        db.add(user)
        db.commit()
        db.refresh(user)
    return user

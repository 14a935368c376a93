"""
User Synchronization from Supabase

Mirrors the JWT subject into the local users table on first access.
"""

import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from aeo.auth.config import get_auth_config
from aeo.auth.jwt import extract_user_info
from aeo.database.models import User

logger = logging.getLogger(__name__)


def sync_user_from_token(db: Session, jwt_payload: Dict[str, Any]) -> User:
    """
    Sync user from a verified JWT payload.

    Creates the user on first access, refreshes profile fields afterwards.

    Returns:
        Local User record
    """
    info = extract_user_info(jwt_payload)
    admin_emails = get_auth_config().admin_emails
    is_admin = bool(info["email"]) and info["email"].lower() in admin_emails

    user = db.query(User).filter(User.id == info["id"]).first()

    if user is None:
        logger.info(f"Creating new user: {info['email']}")
        user = User(
            id=info["id"],
            email=info["email"],
            first_name=info["first_name"],
            last_name=info["last_name"],
            avatar_url=info["avatar_url"],
            is_admin=is_admin,
        )
        db.add(user)
    else:
        user.email = info["email"] or user.email
        user.first_name = info["first_name"] or user.first_name
        user.last_name = info["last_name"] or user.last_name
        user.avatar_url = info["avatar_url"] or user.avatar_url
        if is_admin and not user.is_admin:
            logger.info(f"Promoting {info['email']} to admin")
            user.is_admin = True

    db.commit()
    db.refresh(user)
    return user

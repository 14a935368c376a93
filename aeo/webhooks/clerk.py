"""
Clerk Webhook Handling

Clerk signs deliveries with Svix. Events handled:
- user.created: insert the user (no-op if it already exists)
- user.updated: refresh email, names and avatar
- user.deleted: soft delete (deleted_at)
"""

import json
import logging
import os
from typing import Any, Dict, Mapping, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from svix.webhooks import Webhook, WebhookVerificationError

from aeo.database.models import User, utcnow
from aeo.errors import AppError, ValidationError

logger = logging.getLogger(__name__)

SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


def get_clerk_webhook_secret() -> Optional[str]:
    return os.getenv("CLERK_WEBHOOK_SECRET")


def verify_clerk_webhook(
    payload: Union[bytes, str],
    headers: Mapping[str, str],
    secret: Optional[str],
) -> Dict[str, Any]:
    """
    Verify a Clerk delivery and return the parsed event.

    Raises:
        AppError: 500 when no secret is configured
        ValidationError: Missing svix headers or a bad signature
    """
    if not secret:
        logger.error("CLERK_WEBHOOK_SECRET is not set")
        raise AppError("Webhook secret not configured", code="WEBHOOK_NOT_CONFIGURED", status_code=500)

    svix_headers = {name: headers.get(name) for name in SVIX_HEADERS}
    if not all(svix_headers.values()):
        raise ValidationError("Missing svix headers")

    try:
        Webhook(secret).verify(payload, svix_headers)
    except WebhookVerificationError as e:
        logger.warning(f"Clerk webhook verification failed: {e}")
        raise ValidationError("Webhook verification failed")

    return json.loads(payload)


def _primary_email(data: Dict[str, Any]) -> Optional[str]:
    addresses = data.get("email_addresses") or []
    primary_id = data.get("primary_email_address_id")
    for address in addresses:
        if primary_id and address.get("id") == primary_id:
            return address.get("email_address")
    return addresses[0].get("email_address") if addresses else None


def handle_clerk_event(db: Session, event: Dict[str, Any]) -> str:
    """
    Apply a verified Clerk event to the users table.

    Returns:
        The event type

    Raises:
        AppError: 500 when the database write fails
    """
    event_type = event.get("type", "")
    data = event.get("data") or {}
    user_id = data.get("id")
    logger.info(f"Processing Clerk {event_type} for user {user_id}")

    try:
        user = db.query(User).filter(User.id == user_id).first() if user_id else None

        if event_type == "user.created":
            if user is None:
                db.add(User(
                    id=user_id,
                    email=_primary_email(data),
                    first_name=data.get("first_name"),
                    last_name=data.get("last_name"),
                    avatar_url=data.get("image_url"),
                ))
        elif event_type == "user.updated":
            if user is not None:
                user.email = _primary_email(data) or user.email
                user.first_name = data.get("first_name")
                user.last_name = data.get("last_name")
                user.avatar_url = data.get("image_url")
        elif event_type == "user.deleted":
            if user is not None:
                user.deleted_at = utcnow()
        else:
            logger.info(f"Unhandled Clerk event type: {event_type}")

        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Clerk webhook database error for {event_type}: {e}")
        raise AppError("Database operation failed", code="DATABASE_ERROR", status_code=500)

    return event_type

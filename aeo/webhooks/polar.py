"""
Polar Webhook Handling

Polar follows the Standard Webhooks scheme: the same HMAC as Svix but with
`webhook-id` / `webhook-timestamp` / `webhook-signature` headers and the
raw secret base64-encoded before use.
"""

import base64
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from svix.webhooks import Webhook, WebhookVerificationError

from aeo.database.models import User
from aeo.errors import AppError, ValidationError

logger = logging.getLogger(__name__)

STANDARD_HEADERS = ("webhook-id", "webhook-timestamp", "webhook-signature")

SUBSCRIPTION_EVENTS = (
    "subscription.created",
    "subscription.updated",
    "subscription.active",
    "subscription.canceled",
    "subscription.revoked",
    "subscription.uncanceled",
)


def get_polar_webhook_secret() -> Optional[str]:
    return os.getenv("POLAR_WEBHOOK_SECRET")


def verify_polar_webhook(
    payload: Union[bytes, str],
    headers: Mapping[str, str],
    secret: Optional[str],
) -> Dict[str, Any]:
    """
    Verify a Polar delivery and return the parsed event.

    Raises:
        AppError: 500 when no secret is configured
        ValidationError: "Invalid signature"
    """
    if not secret:
        logger.error("POLAR_WEBHOOK_SECRET is not set")
        raise AppError("Configuration error", code="WEBHOOK_NOT_CONFIGURED", status_code=500)

    encoded_secret = base64.b64encode(secret.encode()).decode()
    standard_headers = {name: headers.get(name) or "" for name in STANDARD_HEADERS}
    try:
        Webhook(encoded_secret).verify(payload, standard_headers)
    except WebhookVerificationError as e:
        logger.warning(f"Polar webhook verification failed: {e}")
        raise ValidationError("Invalid signature")

    return json.loads(payload)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """ISO-8601 timestamp (Z suffix allowed) as a naive UTC datetime."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def apply_subscription(db: Session, data: Dict[str, Any]) -> Optional[User]:
    """
    Record subscription state on the owning user.

    The user is found by metadata.userId, falling back to the stored
    subscription id. Returns None when no user matches.
    """
    user_id = (data.get("metadata") or {}).get("userId")
    subscription_id = data.get("id")

    user = None
    if user_id:
        user = db.query(User).filter(User.id == user_id).first()
    elif subscription_id:
        user = db.query(User).filter(User.polar_subscription_id == subscription_id).first()

    if user is None:
        logger.warning(f"No user for Polar subscription {subscription_id} (metadata userId={user_id})")
        return None

    user.subscription_status = data.get("status") or user.subscription_status
    user.current_period_end = parse_timestamp(data.get("current_period_end"))
    if user_id:
        user.polar_customer_id = data.get("customer_id") or user.polar_customer_id
        user.polar_subscription_id = subscription_id or user.polar_subscription_id
    db.commit()

    logger.info(f"User {user.id} subscription is now {user.subscription_status}")
    return user


def handle_polar_event(db: Session, event: Dict[str, Any]) -> None:
    """
    Apply a verified Polar event.

    Raises:
        AppError: 500 when the database write fails
    """
    event_type = event.get("type", "")
    data = event.get("data") or {}

    if event_type in SUBSCRIPTION_EVENTS:
        try:
            apply_subscription(db, data)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Polar webhook database error for {event_type}: {e}")
            raise AppError("Internal server error", code="DATABASE_ERROR", status_code=500)
    elif event_type.startswith("checkout."):
        logger.info(f"Checkout event received: {event_type} {data.get('id')}")
    elif event_type.startswith("order."):
        logger.info(
            f"Order event {event_type}: order={data.get('id')} amount={data.get('amount')} "
            f"customer={data.get('customer_id')}"
        )
    else:
        logger.info(f"Unhandled Polar event type: {event_type}")

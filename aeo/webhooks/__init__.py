"""
Inbound Webhooks

- clerk: user lifecycle sync (Svix signatures)
- polar: subscription state (Standard Webhooks signatures)
"""

from .clerk import get_clerk_webhook_secret, handle_clerk_event, verify_clerk_webhook
from .polar import (
    apply_subscription,
    get_polar_webhook_secret,
    handle_polar_event,
    parse_timestamp,
    verify_polar_webhook,
)

__all__ = [
    "get_clerk_webhook_secret",
    "handle_clerk_event",
    "verify_clerk_webhook",
    "apply_subscription",
    "get_polar_webhook_secret",
    "handle_polar_event",
    "parse_timestamp",
    "verify_polar_webhook",
]

"""
Webhook Tests

Tests for Clerk (Svix) and Polar (Standard Webhooks) signature checks,
event handling against SQLite and the webhook routes.
"""

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest
from svix.webhooks import Webhook

from aeo.database.models import User
from aeo.errors import AppError, ValidationError
from aeo.webhooks import (
    apply_subscription,
    handle_clerk_event,
    handle_polar_event,
    parse_timestamp,
    verify_clerk_webhook,
    verify_polar_webhook,
)


# =============================================================================
# FIXTURES
# =============================================================================

CLERK_SECRET = "whsec_" + base64.b64encode(b"clerk-signing-secret").decode()
POLAR_SECRET = "polar-signing-secret"


def clerk_headers(payload: str, msg_id: str = "msg_1") -> dict:
    now = datetime.now(timezone.utc)
    return {
        "svix-id": msg_id,
        "svix-timestamp": str(int(now.timestamp())),
        "svix-signature": Webhook(CLERK_SECRET).sign(msg_id, now, payload),
    }


def polar_headers(payload: str, msg_id: str = "evt_1") -> dict:
    now = datetime.now(timezone.utc)
    encoded = base64.b64encode(POLAR_SECRET.encode()).decode()
    return {
        "webhook-id": msg_id,
        "webhook-timestamp": str(int(now.timestamp())),
        "webhook-signature": Webhook(encoded).sign(msg_id, now, payload),
    }


def clerk_user_event(event_type: str, **data) -> dict:
    return {"type": event_type, "data": {"id": "user_clerk_1", **data}}


# =============================================================================
# CLERK
# =============================================================================

class TestClerkVerification:
    """Tests for Svix signature verification."""

    def test_valid_signature(self):
        payload = json.dumps(clerk_user_event("user.created"))

        event = verify_clerk_webhook(payload, clerk_headers(payload), CLERK_SECRET)

        assert event == json.loads(payload)
        assert event["type"] == "user.created"

    def test_tampered_payload(self):
        payload = json.dumps(clerk_user_event("user.created"))
        headers = clerk_headers(payload)

        with pytest.raises(ValidationError, match="Webhook verification failed"):
            verify_clerk_webhook(payload.replace("created", "deleted"), headers, CLERK_SECRET)

    def test_missing_headers(self):
        with pytest.raises(ValidationError, match="Missing svix headers"):
            verify_clerk_webhook("{}", {"svix-id": "msg_1"}, CLERK_SECRET)

    def test_missing_secret(self):
        with pytest.raises(AppError) as exc_info:
            verify_clerk_webhook("{}", {}, None)
        assert exc_info.value.status_code == 500


class TestClerkEvents:
    """Tests for user lifecycle sync."""

    def test_user_created_uses_primary_email(self, db_session):
        event = clerk_user_event(
            "user.created",
            email_addresses=[
                {"id": "e1", "email_address": "old@example.com"},
                {"id": "e2", "email_address": "primary@example.com"},
            ],
            primary_email_address_id="e2",
            first_name="Ada",
            image_url="https://img.clerk.com/ada.png",
        )

        assert handle_clerk_event(db_session, event) == "user.created"

        user = db_session.query(User).filter(User.id == "user_clerk_1").one()
        assert user.email == "primary@example.com"
        assert user.first_name == "Ada"
        assert user.avatar_url == "https://img.clerk.com/ada.png"

    def test_user_created_without_email(self, db_session):
        handle_clerk_event(db_session, clerk_user_event("user.created"))

        assert db_session.query(User).filter(User.id == "user_clerk_1").one().email is None

    def test_user_created_twice_is_noop(self, db_session):
        handle_clerk_event(db_session, clerk_user_event("user.created", first_name="Ada"))
        handle_clerk_event(db_session, clerk_user_event("user.created", first_name="Grace"))

        assert db_session.query(User).filter(User.id == "user_clerk_1").one().first_name == "Ada"

    def test_user_updated(self, db_session):
        handle_clerk_event(db_session, clerk_user_event(
            "user.created", email_addresses=[{"id": "e1", "email_address": "ada@example.com"}],
        ))

        handle_clerk_event(db_session, clerk_user_event("user.updated", first_name="Ada", last_name="Lovelace"))

        user = db_session.query(User).filter(User.id == "user_clerk_1").one()
        assert user.full_name == "Ada Lovelace"
        assert user.email == "ada@example.com"

    def test_user_deleted_is_soft(self, db_session):
        handle_clerk_event(db_session, clerk_user_event("user.created"))

        handle_clerk_event(db_session, clerk_user_event("user.deleted"))

        user = db_session.query(User).filter(User.id == "user_clerk_1").one()
        assert user.deleted_at.tzinfo is None
        assert abs(user.deleted_at - datetime.now(timezone.utc).replace(tzinfo=None)) < timedelta(minutes=1)
        assert not user.is_active

    def test_unknown_event_is_accepted(self, db_session):
        assert handle_clerk_event(db_session, {"type": "session.created", "data": {}}) == "session.created"


# =============================================================================
# POLAR
# =============================================================================

class TestPolarVerification:
    """Tests for Standard Webhooks verification."""

    def test_valid_signature(self):
        payload = json.dumps({"type": "order.created", "data": {"id": "ord_1"}})

        event = verify_polar_webhook(payload, polar_headers(payload), POLAR_SECRET)

        assert event == json.loads(payload)
        assert event["data"]["id"] == "ord_1"

    def test_wrong_secret(self):
        payload = json.dumps({"type": "order.created", "data": {}})

        with pytest.raises(ValidationError, match="Invalid signature"):
            verify_polar_webhook(payload, polar_headers(payload), "another-secret")

    def test_missing_headers(self):
        with pytest.raises(ValidationError, match="Invalid signature"):
            verify_polar_webhook("{}", {}, POLAR_SECRET)


class TestPolarEvents:
    """Tests for subscription state updates."""

    def test_parse_timestamp(self):
        assert parse_timestamp("2026-11-01T00:00:00Z") == datetime(2026, 11, 1)
        assert parse_timestamp("2026-11-01T02:00:00+02:00") == datetime(2026, 11, 1)
        assert parse_timestamp(None) is None

    def test_subscription_by_metadata_user(self, db_session, test_user):
        handle_polar_event(db_session, {"type": "subscription.active", "data": {
            "id": "sub_1",
            "status": "active",
            "customer_id": "cus_1",
            "current_period_end": "2026-11-18T00:00:00Z",
            "metadata": {"userId": test_user.id},
        }})

        db_session.refresh(test_user)
        assert test_user.subscription_status == "active"
        assert test_user.polar_subscription_id == "sub_1"
        assert test_user.polar_customer_id == "cus_1"
        assert test_user.current_period_end == datetime(2026, 11, 18)

    def test_subscription_by_stored_id(self, db_session, test_user):
        test_user.polar_subscription_id = "sub_1"
        db_session.commit()

        user = apply_subscription(db_session, {"id": "sub_1", "status": "canceled"})

        assert user.id == test_user.id
        assert user.subscription_status == "canceled"

    def test_unknown_subscription(self, db_session):
        assert apply_subscription(db_session, {"id": "sub_missing", "status": "active"}) is None

    def test_order_events_are_logged_only(self, db_session, test_user):
        handle_polar_event(db_session, {"type": "order.created", "data": {"id": "ord_1", "amount": 2900}})

        db_session.refresh(test_user)
        assert test_user.polar_subscription_id is None


# =============================================================================
# ROUTES
# =============================================================================

class TestWebhookRoutes:
    """Tests for the unauthenticated webhook endpoints."""

    def test_clerk_route(self, client, db_session, monkeypatch):
        monkeypatch.setenv("CLERK_WEBHOOK_SECRET", CLERK_SECRET)
        payload = json.dumps(clerk_user_event("user.created"))

        response = client.post("/api/webhooks/clerk", content=payload, headers=clerk_headers(payload))

        assert response.status_code == 200
        assert response.json() == {"success": True, "type": "user.created"}
        assert db_session.query(User).filter(User.id == "user_clerk_1").count() == 1

    def test_clerk_route_bad_signature(self, client, monkeypatch):
        monkeypatch.setenv("CLERK_WEBHOOK_SECRET", CLERK_SECRET)
        headers = clerk_headers("{}")

        response = client.post("/api/webhooks/clerk", content='{"type": "x"}', headers=headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Webhook verification failed"

    def test_clerk_route_unconfigured(self, client, monkeypatch):
        monkeypatch.delenv("CLERK_WEBHOOK_SECRET", raising=False)

        response = client.post("/api/webhooks/clerk", content="{}")

        assert response.status_code == 500
        assert response.json()["code"] == "WEBHOOK_NOT_CONFIGURED"

    def test_polar_route(self, client, monkeypatch):
        monkeypatch.setenv("POLAR_WEBHOOK_SECRET", POLAR_SECRET)
        payload = json.dumps({"type": "checkout.created", "data": {"id": "chk_1"}})

        response = client.post("/api/webhooks/polar", content=payload, headers=polar_headers(payload))

        assert response.status_code == 200
        assert response.json() == {"received": True}

    def test_polar_subscription_route(self, client, db_session, test_user, monkeypatch):
        monkeypatch.setenv("POLAR_WEBHOOK_SECRET", POLAR_SECRET)
        payload = json.dumps({"type": "subscription.updated", "data": {
            "id": "sub_9", "status": "past_due", "metadata": {"userId": test_user.id},
        }})

        response = client.post("/api/webhooks/polar", content=payload, headers=polar_headers(payload))

        assert response.status_code == 200
        assert response.json() == {"received": True}
        db_session.refresh(test_user)
        assert test_user.subscription_status == "past_due"

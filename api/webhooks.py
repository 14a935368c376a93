"""
Inbound Webhooks

Endpoints (unauthenticated, signature-verified):
- POST /api/webhooks/clerk - User lifecycle sync
- POST /api/webhooks/polar - Subscription state

The raw body is verified before it is parsed.
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from aeo.database import get_db
from aeo.webhooks import (
    get_clerk_webhook_secret,
    get_polar_webhook_secret,
    handle_clerk_event,
    handle_polar_event,
    verify_clerk_webhook,
    verify_polar_webhook,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])


@router.post("/clerk")
async def clerk_webhook(request: Request, db: Session = Depends(get_db)):
    payload = await request.body()
    event = verify_clerk_webhook(payload, request.headers, get_clerk_webhook_secret())
    event_type = handle_clerk_event(db, event)
    return {"success": True, "type": event_type}


@router.post("/polar")
async def polar_webhook(request: Request, db: Session = Depends(get_db)):
    payload = await request.body()
    event = verify_polar_webhook(payload, request.headers, get_polar_webhook_secret())
    logger.info(f"Polar webhook received: {event.get('type')}")
    handle_polar_event(db, event)
    return {"received": True}

# backend/routes/webhooks.py
import json
import logging
from typing import Optional

from fastapi import APIRouter, Request, Depends, HTTPException, Header
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from services.identity import upsert_user, delete_user
from services.reconciler import reconcile_event, Outcome
from utils.audit import client_ip, write_log
from utils.errors import ReconciliationRetry
from utils.signatures import verify_stripe_signature, verify_svix_signature

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])
logger = logging.getLogger(__name__)

ROLES = {"user", "admin"}

def _parse_json(body: bytes) -> dict:
    try:
        payload = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    return payload

# Payment processor events. 400 = forged or malformed, 200 = handled or not
# actionable, 500 = please redeliver.
@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature")
):
    if stripe_signature is None:
        raise HTTPException(status_code=400, detail="Missing Stripe-Signature header")

    body = await request.body()

    verified = verify_stripe_signature(
        stripe_signature, body, settings.STRIPE_WEBHOOK_SECRET, tolerance=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS
    )
    if not verified:
        logger.warning("Stripe signature verification failed")
        raise HTTPException(status_code=400, detail="Webhook signature verification failed")

    event = _parse_json(body)
    logger.info("Stripe event received. id=%s type=%s", event.get("id"), event.get("type"))

    try:
        result = reconcile_event(db, event)
    except ReconciliationRetry as e:
        logger.warning("Stripe event %s deferred: %s", event.get("id"), e)
        raise HTTPException(status_code=500, detail="Event cannot be applied yet")
    except Exception as e:
        db.rollback()
        logger.exception("CRITICAL: Failed to process Stripe event %s: %s", event.get("id"), e)
        raise HTTPException(status_code=500, detail="Internal Server Error")

    if result.outcome in (Outcome.PROCESSED, Outcome.STOCK_CONFLICT):
        # Write audit log; a logging failure must not trigger a redelivery
        try:
            write_log(
                db, user_id=None, action="PAYMENT_WEBHOOK", resource="payments",
                status="SUCCESS" if result.outcome == Outcome.PROCESSED else "FAIL",
                ip=client_ip(request),
                meta={
                    "event_id": event.get("id"),
                    "event_type": result.event_type,
                    "order_id": result.order_id,
                    "user_id": result.user_id,
                    "payment_reference": result.payment_reference,
                    "outcome": result.outcome.value,
                    "short_products": result.short_products,
                },
            )
        except Exception as log_e:
            db.rollback()
            logger.exception("Failed to write audit log after Stripe event: %s", log_e)

    return {"received": True, "outcome": result.outcome.value}

# Pick the primary address out of the identity provider's payload
def _primary_email(data: dict) -> Optional[str]:
    primary_id = data.get("primary_email_address_id")
    for entry in data.get("email_addresses") or []:
        if entry.get("id") == primary_id:
            return entry.get("email_address")
    return None

def _full_name(data: dict) -> str:
    name = " ".join(p for p in (data.get("first_name"), data.get("last_name")) if p).strip()
    return name or data.get("username") or "Unknown"

# User lifecycle events from the identity provider
@router.post("/register")
async def identity_webhook(
    request: Request,
    db: Session = Depends(get_db),
    svix_id: Optional[str] = Header(None, alias="svix-id"),
    svix_timestamp: Optional[str] = Header(None, alias="svix-timestamp"),
    svix_signature: Optional[str] = Header(None, alias="svix-signature"),
):
    if not svix_id or not svix_timestamp or not svix_signature:
        raise HTTPException(status_code=400, detail="Missing svix headers")

    body = await request.body()
    if not verify_svix_signature(svix_id, svix_timestamp, svix_signature, body, settings.IDENTITY_WEBHOOK_SECRET):
        logger.warning("Identity webhook signature verification failed. svix-id=%s", svix_id)
        raise HTTPException(status_code=400, detail="Webhook signature verification failed")

    event = _parse_json(body)
    event_type = event.get("type")
    data = event.get("data") or {}
    logger.info("Identity webhook received with type: %s", event_type)

    try:
        if event_type in ("user.created", "user.updated"):
            email = _primary_email(data)
            if not email:
                logger.error("No primary email found in identity webhook data for %s", data.get("id"))
                raise HTTPException(status_code=400, detail="No primary email")

            role = (data.get("public_metadata") or {}).get("role")
            upsert_user(
                db,
                user_id=data["id"],
                email=email,
                full_name=_full_name(data),
                role=role if role in ROLES else None,
            )
            logger.info("User %s synced for ID: %s", event_type, data["id"])
        elif event_type == "user.deleted":
            if data.get("id"):
                delete_user(db, data["id"])
                logger.info("User deleted: %s", data["id"])
        else:
            logger.info("Ignoring identity event type: %s", event_type)
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.exception("Error processing identity webhook: %s", e)
        raise HTTPException(status_code=500, detail="Internal Server Error")

    return {"received": True}

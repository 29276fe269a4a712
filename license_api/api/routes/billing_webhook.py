import logging
from typing import Optional
from fastapi import APIRouter, Request, Header, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from license_api.core import config
from license_api.db.session import get_db
from license_api.db.account_repository import AccountRepository
from license_api.schemas.billing import WebhookAck
from license_api.services.webhook_service import WebhookProcessor, verify_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stripe", tags=["Billing Webhook"])


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    db: Session = Depends(get_db),
):
    """
    Stripe event receiver.

    400 on a bad signature (nothing is touched), 200 once the event is
    handled or deliberately ignored, 500 when a handler fails so Stripe
    redelivers the event.
    """
    payload = await request.body()

    # Raises before any parsing on a bad signature; rendered by the app's error handlers
    event = verify_event(payload, stripe_signature, config.STRIPE_WEBHOOK_SECRET)

    try:
        result = WebhookProcessor(AccountRepository(db)).process(event)
    except Exception as e:
        db.rollback()
        logger.error(f"Webhook handler failed for {event.get('type')} id={event.get('id')}: {e}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"received": False, "error": "Webhook handler failed"},
        )

    return WebhookAck(result=result)

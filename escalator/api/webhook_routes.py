"""Chatwoot webhook endpoint."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from escalator.database.db import get_db
from escalator.services.webhook_service import (
    WebhookValidationError,
    handle_webhook_event,
    parse_webhook_body,
)

logger = logging.getLogger(__name__)

webhook_router = APIRouter(prefix="/webhook", tags=["webhooks"])


@webhook_router.post("/chatwoot", response_class=PlainTextResponse)
async def chatwoot_webhook(request: Request, db: Session = Depends(get_db)):
    """Ingest a Chatwoot event. 500 tells Chatwoot the delivery should be retried."""
    raw = await request.body()
    logger.info("Webhook received. Processing payload...")
    logger.debug("Webhook payload: %s", raw.decode("utf-8", errors="replace"))

    try:
        payload = parse_webhook_body(raw)
        handle_webhook_event(payload, db)
    except WebhookValidationError as exc:
        logger.error("Error processing webhook: %s", exc)
        logger.error("Request body: %s", raw.decode("utf-8", errors="replace"))
        return PlainTextResponse("Error processing webhook", status_code=500)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Database error storing webhook")
        logger.error("Request body: %s", raw.decode("utf-8", errors="replace"))
        return PlainTextResponse("Error processing webhook", status_code=500)
    except Exception:
        db.rollback()
        logger.exception("Unexpected error processing webhook")
        logger.error("Request body: %s", raw.decode("utf-8", errors="replace"))
        return PlainTextResponse("Error processing webhook", status_code=500)

    return PlainTextResponse("Webhook received")

"""Job runners shared by the in-process scheduler, manual triggers and Celery."""

import asyncio
import logging

from escalator.celery_app import app
from escalator.config.settings import get_settings
from escalator.database.db import SessionLocal
from escalator.services.chatwoot_client import ChatwootClient
from escalator.services.reconciler import process_pending_conversations
from escalator.services.retention import cleanup_processed_conversations

logger = logging.getLogger(__name__)


async def run_reconciliation() -> dict:
    """One sweep of pending conversations with a fresh session and client."""
    db = SessionLocal()
    try:
        client = ChatwootClient.from_settings(get_settings())
        return await process_pending_conversations(db, client)
    finally:
        db.close()


async def run_retention() -> dict:
    db = SessionLocal()
    try:
        deleted = cleanup_processed_conversations(db, get_settings().db_cleanup_days)
        return {"deleted": deleted}
    finally:
        db.close()


@app.task
def process_pending_conversations_task():
    """Beat entry point for the pending-conversation sweep (every minute)."""
    try:
        return asyncio.run(run_reconciliation())
    except Exception:
        logger.exception("Pending conversation task failed")
        raise


@app.task
def cleanup_processed_conversations_task():
    """Beat entry point for the retention cleanup (daily at midnight)."""
    try:
        return asyncio.run(run_retention())
    except Exception:
        logger.exception("Cleanup task failed")
        raise

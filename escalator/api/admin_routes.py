"""Operational endpoints: health, record dump and manual job triggers."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from escalator.config.settings import get_settings
from escalator.database.db import get_db
from escalator.scheduler import run_logged
from escalator.services.conversation_store import conversation_to_dict, list_conversations
from escalator.tasks.conversation_tasks import (
    cleanup_processed_conversations_task,
    process_pending_conversations_task,
    run_reconciliation,
    run_retention,
)

logger = logging.getLogger(__name__)

admin_router = APIRouter(tags=["admin"])


@admin_router.get("/health", response_class=PlainTextResponse)
def health_check():
    logger.debug("Health check endpoint accessed")
    return "Server is running"


@admin_router.get("/debug/db")
def debug_db(db: Session = Depends(get_db)):
    """All stored conversations. Diagnostics only."""
    try:
        rows = list_conversations(db)
    except SQLAlchemyError as exc:
        logger.exception("Error querying conversations")
        return JSONResponse(status_code=500, content={"error": str(exc)})

    logger.info("Returning %d conversations", len(rows))
    return {"conversations": [conversation_to_dict(row) for row in rows]}


@admin_router.get("/process-now", response_class=PlainTextResponse)
def process_now(background_tasks: BackgroundTasks):
    logger.info("Manual processing triggered")
    if get_settings().use_celery:
        process_pending_conversations_task.delay()
    else:
        background_tasks.add_task(run_logged, "reconciliation", run_reconciliation)
    return "Processing triggered"


@admin_router.get("/cleanup-now", response_class=PlainTextResponse)
def cleanup_now(background_tasks: BackgroundTasks):
    logger.info("Manual cleanup triggered")
    if get_settings().use_celery:
        cleanup_processed_conversations_task.delay()
    else:
        background_tasks.add_task(run_logged, "retention", run_retention)
    return "Cleanup triggered"

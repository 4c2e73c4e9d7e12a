import json
import logging

from fastapi import FastAPI

from escalator.api.admin_routes import admin_router
from escalator.api.webhook_routes import webhook_router
from escalator.config.logging import configure_logging
from escalator.config.settings import get_settings
from escalator.database.db import SessionLocal, init_db
from escalator.scheduler import build_scheduler
from escalator.services.conversation_store import (
    conversation_to_dict,
    count_conversations,
    list_conversations,
)

settings = get_settings()
logger = logging.getLogger(__name__)


def _log_startup_state() -> None:
    for name in settings.missing_chatwoot_settings():
        logger.error("%s is not set in environment or .env file", name)

    logger.info("Environment configuration:")
    for key, value in settings.describe().items():
        logger.info("- %s: %s", key, value)

    db = SessionLocal()
    try:
        total = count_conversations(db)
        logger.info("Current conversations in database: %d", total)
        if total:
            first = [conversation_to_dict(c) for c in list_conversations(db)[:5]]
            logger.info("First 5 conversations: %s", json.dumps(first))
    finally:
        db.close()

    base = f"http://<YOUR_SERVER_IP_OR_DOMAIN>:{settings.port}"
    logger.info("Webhook URL: %s/webhook/chatwoot", base)
    logger.info("Health check: %s/health", base)
    logger.info("Database debug: %s/debug/db", base)
    logger.info("Manual processing: %s/process-now", base)
    logger.info("Manual cleanup: %s/cleanup-now", base)


def create_app() -> FastAPI:
    configure_logging(settings)

    # Disable Swagger/ReDoc in production
    docs_kwargs = {}
    if settings.is_production:
        docs_kwargs = {"docs_url": None, "redoc_url": None}

    app = FastAPI(
        title="Chatwoot Escalator",
        description="Opens and assigns Chatwoot conversations left pending",
        version="1.0.0",
        **docs_kwargs,
    )

    app.include_router(webhook_router)
    app.include_router(admin_router)

    @app.on_event("startup")
    async def on_startup():
        settings.validate_production()
        init_db()  # Deployed envs can use: alembic upgrade head
        _log_startup_state()

        if settings.use_celery:
            logger.info("Jobs run on Celery beat; in-process scheduler disabled")
        else:
            app.state.scheduler = build_scheduler()
            app.state.scheduler.start()
            logger.info("Processing job scheduled to run every 1 minute")
            logger.info("Cleanup job scheduled to run daily at midnight")

    @app.on_event("shutdown")
    async def on_shutdown():
        scheduler = getattr(app.state, "scheduler", None)
        if scheduler is not None:
            await scheduler.stop()

    return app


app = create_app()

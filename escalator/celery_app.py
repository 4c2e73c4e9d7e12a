"""Celery application configuration.

Used when REDIS_URL (or CELERY_BROKER_URL) is set; otherwise the API process
runs both jobs on its own scheduler. Falls back to memory:// for tests.
"""

from celery import Celery
from celery.schedules import crontab

from escalator.config.logging import configure_logging
from escalator.config.settings import get_settings

settings = get_settings()
configure_logging(settings)

app = Celery("escalator")

app.conf.update(
    broker_url=settings.effective_celery_broker,
    result_backend=settings.effective_celery_backend,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    # Crontabs fire on server-local time
    enable_utc=False,
    worker_prefetch_multiplier=1,
    include=["escalator.tasks.conversation_tasks"],
    beat_schedule={
        "process-pending-conversations": {
            "task": "escalator.tasks.conversation_tasks.process_pending_conversations_task",
            "schedule": crontab(minute="*/1"),
        },
        "cleanup-processed-conversations": {
            "task": "escalator.tasks.conversation_tasks.cleanup_processed_conversations_task",
            "schedule": crontab(minute=0, hour=0),  # Daily at midnight
        },
    },
)

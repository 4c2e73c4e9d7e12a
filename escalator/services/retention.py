import logging
import time

from sqlalchemy.orm import Session

from escalator.services.conversation_store import delete_processed_before

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def cleanup_processed_conversations(db: Session, retention_days: int, now: int | None = None) -> int:
    """Delete processed conversations older than the retention window. Returns rows removed."""
    now = int(time.time()) if now is None else now
    cutoff = now - retention_days * SECONDS_PER_DAY
    logger.info("Removing processed conversations from before %d (now %d)", cutoff, now)

    deleted = delete_processed_before(db, cutoff)
    logger.info("Cleaned up %d processed conversations from database", deleted)
    return deleted

"""
Escalation of conversations still pending 30 minutes after creation.

Each candidate is re-checked against Chatwoot before acting, so a webhook
that arrived late or twice never escalates a conversation someone already
picked up. Candidates are handled one at a time and independently: a failure
on one record leaves it unprocessed for the next sweep and does not stop the
rest.
"""

import logging
import time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from escalator.services.chatwoot_client import ChatwootClient
from escalator.services.conversation_store import find_due_conversations, mark_processed

logger = logging.getLogger(__name__)

PENDING_DELAY_SECONDS = 30 * 60


async def process_pending_conversations(db: Session, client: ChatwootClient, now: int | None = None) -> dict:
    """Open and assign pending conversations older than the escalation delay."""
    now = int(time.time()) if now is None else now
    cutoff = now - PENDING_DELAY_SECONDS
    logger.info("Processing pending conversations created before %d (now %d)", cutoff, now)

    candidates = [(c.id, c.created_at) for c in find_due_conversations(db, cutoff)]
    logger.info("Found %d pending conversations to process", len(candidates))

    summary = {"candidates": len(candidates), "escalated": 0, "resolved": 0, "skipped": 0, "failed": 0}

    for conversation_id, created_at in candidates:
        minutes_ago = round((now - created_at) / 60)
        logger.info("Processing conversation %s (created %d minutes ago)", conversation_id, minutes_ago)
        try:
            outcome = await _reconcile_one(db, client, conversation_id, now)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Database update failed for conversation %s", conversation_id)
            outcome = "failed"
        except Exception:
            logger.exception("Unexpected error processing conversation %s", conversation_id)
            outcome = "failed"
        summary[outcome] += 1

    logger.info(
        "Pending sweep: %(escalated)d escalated, %(resolved)d already resolved, "
        "%(skipped)d skipped, %(failed)d failed out of %(candidates)d",
        summary,
    )
    return summary


async def _reconcile_one(db: Session, client: ChatwootClient, conversation_id: int, now: int) -> str:
    current_status = await client.fetch_status(conversation_id)

    if current_status is None:
        logger.warning("Could not determine status for conversation %s, skipping", conversation_id)
        return "skipped"

    if current_status != "pending":
        mark_processed(db, conversation_id, current_status, now)
        logger.info("Conversation %s is already %s, marked as processed", conversation_id, current_status)
        return "resolved"

    logger.info("Conversation %s is still pending, opening it", conversation_id)
    if not await client.open_conversation(conversation_id):
        # Left unprocessed; the next sweep picks it up again
        return "skipped"

    if not await client.assign_to_team(conversation_id):
        logger.warning("Conversation %s opened but team assignment failed", conversation_id)

    mark_processed(db, conversation_id, "open", now)
    logger.info("Conversation %s marked as processed", conversation_id)
    return "escalated"

"""Chatwoot webhook ingestion: payload validation and conversation upsert."""

import json
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from sqlalchemy.orm import Session

from escalator.database.models import Conversation
from escalator.services.conversation_store import upsert_conversation

logger = logging.getLogger(__name__)

CONVERSATION_CREATED = "conversation_created"

# Largest value a signed 64-bit INTEGER column holds
MAX_DB_INT = 2**63 - 1


class WebhookValidationError(ValueError):
    """Raised when a webhook body or event payload is malformed."""
    pass


class ConversationCreatedEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int = Field(ge=0, le=MAX_DB_INT)
    status: str
    created_at: int | None = Field(None, ge=0, le=MAX_DB_INT)
    timestamp: int | None = Field(None, ge=0, le=MAX_DB_INT)
    inbox_id: int = Field(ge=0, le=MAX_DB_INT)

    @model_validator(mode="after")
    def _require_creation_time(self):
        if self.created_at is None and self.timestamp is None:
            raise ValueError("created_at or timestamp is required")
        return self

    @property
    def effective_created_at(self) -> int:
        return self.created_at if self.created_at is not None else self.timestamp


def parse_webhook_body(raw: bytes) -> dict:
    """Decode a webhook request body into a JSON object."""
    try:
        payload = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as exc:
        raise WebhookValidationError(f"Body is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise WebhookValidationError("Body must be a JSON object")
    return payload


def handle_webhook_event(payload: dict, db: Session) -> Conversation | None:
    """Store conversation_created events; acknowledge and ignore everything else."""
    event_type = payload.get("event")
    if event_type != CONVERSATION_CREATED:
        logger.info("Ignoring non-conversation_created event: %s", event_type)
        return None

    try:
        event = ConversationCreatedEvent.model_validate(payload)
    except ValidationError as exc:
        raise WebhookValidationError(f"Invalid conversation_created payload: {exc}") from exc

    conversation = upsert_conversation(
        db,
        conversation_id=event.id,
        status=event.status,
        created_at=event.effective_created_at,
        inbox_id=event.inbox_id,
    )
    logger.info("Conversation stored: ID=%s, Status=%s", conversation.id, conversation.status)
    return conversation

"""Persistence operations on the conversations table.

Every write commits on its own; callers roll back the session on
``SQLAlchemyError``.
"""

from sqlalchemy import func
from sqlalchemy.orm import Session

from escalator.database.models import Conversation


def upsert_conversation(
    db: Session,
    conversation_id: int,
    status: str,
    created_at: int,
    inbox_id: int | None,
) -> Conversation:
    """Insert or overwrite a conversation, resetting its processing state."""
    conversation = db.get(Conversation, conversation_id)
    if conversation is None:
        conversation = Conversation(id=conversation_id)
        db.add(conversation)

    conversation.status = status
    conversation.created_at = created_at
    conversation.inbox_id = inbox_id
    conversation.processed = False
    conversation.processed_at = None

    db.commit()
    db.refresh(conversation)
    return conversation


def find_due_conversations(db: Session, cutoff: int) -> list[Conversation]:
    """Unprocessed pending conversations created before ``cutoff``."""
    return (
        db.query(Conversation)
        .filter(
            Conversation.status == "pending",
            Conversation.created_at < cutoff,
            Conversation.processed == False,
        )
        .all()
    )


def mark_processed(db: Session, conversation_id: int, status: str, processed_at: int) -> bool:
    """Record a terminal action. Returns False if the row no longer exists."""
    updated = (
        db.query(Conversation)
        .filter(Conversation.id == conversation_id)
        .update(
            {
                Conversation.status: status,
                Conversation.processed: True,
                Conversation.processed_at: processed_at,
            },
            synchronize_session=False,
        )
    )
    db.commit()
    return updated > 0


def delete_processed_before(db: Session, cutoff: int) -> int:
    deleted = (
        db.query(Conversation)
        .filter(
            Conversation.processed == True,
            Conversation.processed_at < cutoff,
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted


def list_conversations(db: Session) -> list[Conversation]:
    return db.query(Conversation).order_by(Conversation.id).all()


def count_conversations(db: Session) -> int:
    return db.query(func.count(Conversation.id)).scalar() or 0


def conversation_to_dict(conversation: Conversation) -> dict:
    """Row shape used by the debug dump; ``processed`` as 0/1 like SQLite stores it."""
    return {
        "id": conversation.id,
        "status": conversation.status,
        "created_at": conversation.created_at,
        "inbox_id": conversation.inbox_id,
        "processed": int(bool(conversation.processed)),
        "processed_at": conversation.processed_at,
    }

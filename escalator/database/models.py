from sqlalchemy import BigInteger, Boolean, Index, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Conversation(Base):
    """Local record of a Chatwoot conversation awaiting escalation.

    Timestamps are Unix seconds. ``processed_at`` is set exactly when
    ``processed`` becomes true.
    """
    __tablename__ = "conversations"

    # Chatwoot's conversation id, never generated locally
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    status: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[int | None] = mapped_column(BigInteger)
    inbox_id: Mapped[int | None] = mapped_column(BigInteger)
    processed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    processed_at: Mapped[int | None] = mapped_column(BigInteger)

    __table_args__ = (
        Index("ix_conversations_due", "processed", "status", "created_at"),
    )

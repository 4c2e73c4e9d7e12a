"""Create conversations table.

Revision ID: 0001
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "conversations",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column("status", sa.Text()),
        sa.Column("created_at", sa.BigInteger()),
        sa.Column("inbox_id", sa.BigInteger()),
        sa.Column("processed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("processed_at", sa.BigInteger()),
    )
    op.create_index("ix_conversations_due", "conversations", ["processed", "status", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_conversations_due", table_name="conversations")
    op.drop_table("conversations")

"""Tests for the pending-conversation sweep."""

import pytest
from unittest.mock import patch, AsyncMock, MagicMock
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from escalator.database.models import Base, Conversation
from escalator.services import conversation_store
from escalator.services.reconciler import process_pending_conversations, PENDING_DELAY_SECONDS

NOW = 1_760_000_000


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestSession()
    yield session
    session.close()


def _seed(db, conv_id, age_minutes=31, status="pending"):
    db.add(Conversation(id=conv_id, status=status, created_at=NOW - age_minutes * 60, inbox_id=7))
    db.commit()


def _chatwoot(status="pending", open_ok=True, assign_ok=True):
    client = MagicMock()
    client.fetch_status = AsyncMock(return_value=status)
    client.open_conversation = AsyncMock(return_value=open_ok)
    client.assign_to_team = AsyncMock(return_value=assign_ok)
    return client


@pytest.mark.asyncio
class TestCandidateSelection:

    async def test_only_old_pending_records_checked(self, db):
        _seed(db, 1, age_minutes=31)
        _seed(db, 2, age_minutes=10)
        client = _chatwoot(status="open")

        summary = await process_pending_conversations(db, client, now=NOW)

        client.fetch_status.assert_awaited_once_with(1)
        assert summary["candidates"] == 1
        assert db.get(Conversation, 2).processed is False

    async def test_delay_is_thirty_minutes(self):
        assert PENDING_DELAY_SECONDS == 1800

    async def test_no_candidates(self, db):
        client = _chatwoot()

        summary = await process_pending_conversations(db, client, now=NOW)

        assert summary == {"candidates": 0, "escalated": 0, "resolved": 0, "skipped": 0, "failed": 0}
        client.fetch_status.assert_not_awaited()


@pytest.mark.asyncio
class TestRemoteStatusOutcomes:

    async def test_already_open_is_marked_processed_without_escalating(self, db):
        _seed(db, 42)
        client = _chatwoot(status="open")

        summary = await process_pending_conversations(db, client, now=NOW)

        conv = db.get(Conversation, 42)
        assert conv.status == "open"
        assert conv.processed is True
        assert conv.processed_at == NOW
        client.open_conversation.assert_not_awaited()
        client.assign_to_team.assert_not_awaited()
        assert summary["resolved"] == 1

    async def test_other_remote_status_is_mirrored(self, db):
        _seed(db, 42)
        client = _chatwoot(status="resolved")

        await process_pending_conversations(db, client, now=NOW)

        conv = db.get(Conversation, 42)
        assert conv.status == "resolved"
        assert conv.processed is True

    async def test_still_pending_is_opened_and_assigned(self, db):
        _seed(db, 42)
        client = _chatwoot(status="pending")

        summary = await process_pending_conversations(db, client, now=NOW)

        client.open_conversation.assert_awaited_once_with(42)
        client.assign_to_team.assert_awaited_once_with(42)
        conv = db.get(Conversation, 42)
        assert conv.status == "open"
        assert conv.processed is True
        assert conv.processed_at == NOW
        assert summary["escalated"] == 1

    async def test_open_failure_skips_assignment_and_leaves_record(self, db):
        _seed(db, 42)
        client = _chatwoot(status="pending", open_ok=False)

        summary = await process_pending_conversations(db, client, now=NOW)

        client.assign_to_team.assert_not_awaited()
        conv = db.get(Conversation, 42)
        assert conv.status == "pending"
        assert conv.processed is False
        assert conv.processed_at is None
        assert summary["skipped"] == 1

    async def test_assignment_failure_still_marks_processed(self, db):
        _seed(db, 42)
        client = _chatwoot(status="pending", assign_ok=False)

        await process_pending_conversations(db, client, now=NOW)

        conv = db.get(Conversation, 42)
        assert conv.processed is True
        assert conv.status == "open"

    async def test_failed_status_check_leaves_record_eligible(self, db):
        _seed(db, 42)
        client = _chatwoot(status=None)

        summary = await process_pending_conversations(db, client, now=NOW)

        conv = db.get(Conversation, 42)
        assert conv.status == "pending"
        assert conv.processed is False
        assert conv.processed_at is None
        assert summary["skipped"] == 1
        client.open_conversation.assert_not_awaited()

        # Next sweep picks it up again
        client.fetch_status.return_value = "open"
        summary = await process_pending_conversations(db, client, now=NOW + 60)

        assert summary["candidates"] == 1
        assert db.get(Conversation, 42).processed is True


@pytest.mark.asyncio
class TestPerRecordIsolation:

    async def test_unexpected_error_does_not_abort_sweep(self, db):
        _seed(db, 1)
        _seed(db, 2)

        async def fetch(conversation_id):
            if conversation_id == 1:
                raise RuntimeError("unexpected")
            return "open"

        client = _chatwoot()
        client.fetch_status = AsyncMock(side_effect=fetch)

        summary = await process_pending_conversations(db, client, now=NOW)

        assert summary["failed"] == 1
        assert summary["resolved"] == 1
        assert db.get(Conversation, 1).processed is False
        assert db.get(Conversation, 2).processed is True

    async def test_store_error_abandons_only_that_record(self, db):
        _seed(db, 1)
        _seed(db, 2)
        real_mark = conversation_store.mark_processed

        def flaky_mark(session, conversation_id, status, processed_at):
            if conversation_id == 1:
                raise OperationalError("UPDATE", {}, Exception("database is locked"))
            return real_mark(session, conversation_id, status, processed_at)

        with patch("escalator.services.reconciler.mark_processed", side_effect=flaky_mark):
            summary = await process_pending_conversations(db, _chatwoot(status="closed"), now=NOW)

        assert summary["failed"] == 1
        assert summary["resolved"] == 1
        assert db.get(Conversation, 1).processed is False
        assert db.get(Conversation, 2).status == "closed"

"""Tests for DatabaseNotifier."""
import pytest
from sqlalchemy import select

from friendzone.db.models import Notification
from friendzone.knock.engine import KnockEngine
from friendzone.services.notifications import DatabaseNotifier


async def _notifications(db):
    res = await db.execute(
        select(Notification.recipient_id, Notification.sender_id, Notification.kind, Notification.knock_id)
        .order_by(Notification.id)
    )
    return res.all()


class TestDatabaseNotifier:

    @pytest.mark.asyncio
    async def test_request_then_accept(self, db, session_factory, make_user):
        a = await make_user()
        b = await make_user(is_private=True)
        engine = KnockEngine(db, notifier=DatabaseNotifier(session_factory), retry_delay=0)

        edge = await engine.knock(a, b)
        edge_id = edge.id

        rows = await _notifications(db)
        assert [(r.recipient_id, r.sender_id, r.kind, r.knock_id) for r in rows] == [
            (b, a, "invite", edge_id),
        ]

        await engine.accept(b, edge_id)

        rows = await _notifications(db)
        # the request notification is retired, the knocker hears back
        assert [(r.recipient_id, r.kind) for r in rows] == [(a, "accepted")]

    @pytest.mark.asyncio
    async def test_decline_only_clears_request(self, db, session_factory, make_user):
        a = await make_user()
        b = await make_user(is_private=True)
        engine = KnockEngine(db, notifier=DatabaseNotifier(session_factory), retry_delay=0)

        edge = await engine.knock(a, b)
        await engine.decline(b, edge.id)

        assert await _notifications(db) == []

    @pytest.mark.asyncio
    async def test_one_way_knock_notifies_target(self, db, session_factory, make_user):
        a = await make_user()
        b = await make_user()
        engine = KnockEngine(db, notifier=DatabaseNotifier(session_factory), retry_delay=0)

        await engine.knock(a, b)

        rows = await _notifications(db)
        assert [(r.recipient_id, r.kind) for r in rows] == [(b, "one_way_notice")]

    @pytest.mark.asyncio
    async def test_lock_in_through_accept_clears_both_requests(self, db, session_factory, make_user):
        a = await make_user(is_private=True)
        b = await make_user(is_private=True)
        engine = KnockEngine(db, notifier=DatabaseNotifier(session_factory), retry_delay=0)

        edge = await engine.knock(a, b)
        edge_id = edge.id
        await engine.knock(b, a)

        rows = await _notifications(db)
        assert [(r.recipient_id, r.kind) for r in rows] == [(b, "invite"), (a, "invite")]

        await engine.accept(b, edge_id)

        rows = await _notifications(db)
        assert [(r.recipient_id, r.sender_id, r.kind, r.knock_id) for r in rows] == [
            (a, b, "mutual_lock", edge_id),
        ]

    @pytest.mark.asyncio
    async def test_lock_in_through_knock_back_clears_reverse_request(self, db, session_factory, make_user):
        a = await make_user(is_private=True)
        b = await make_user()
        engine = KnockEngine(db, notifier=DatabaseNotifier(session_factory), retry_delay=0)

        edge = await engine.knock(a, b)
        edge_id = edge.id
        await engine.knock(b, a)

        await engine.knock_back(b, edge_id)

        rows = await _notifications(db)
        # the one-way notice is history, not a request, so it stays
        assert [(r.recipient_id, r.kind) for r in rows] == [(b, "one_way_notice"), (a, "mutual_lock")]

"""HTTP tests for the knock and chat routers."""
import httpx
import pytest
import pytest_asyncio

from friendzone.db.session import get_db
from friendzone.knock.events import RecordingNotifier
from friendzone.main import app
from friendzone.utils.deps import create_access_token, get_notifier


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    recorder = RecordingNotifier()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: recorder

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        c.recorder = recorder
        yield c

    app.dependency_overrides.clear()


def auth(user_id: int) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


class TestKnockRoutes:

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client):
        resp = await client.get("/knocks/pending")
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_request_accept_flow(self, client, make_user):
        a = await make_user()
        b = await make_user(is_private=True)

        resp = await client.post("/knocks", json={"knocked_id": b}, headers=auth(a))
        assert resp.status_code == 201
        knock = resp.json()
        assert knock["status"] == "pending"

        pending = (await client.get("/knocks/pending", headers=auth(b))).json()
        assert [k["id"] for k in pending] == [knock["id"]]

        resp = await client.put(f"/knocks/{knock['id']}/accept", headers=auth(b))
        assert resp.status_code == 200
        assert resp.json()["status"] == "onesided"

        counts = (await client.get(f"/knocks/counts/{b}", headers=auth(a))).json()
        assert counts == {"incoming_count": 1, "outgoing_count": 0, "locked_in_count": 0}

        assert [e.kind.value for e in client.recorder.events] == ["invite", "accepted"]

    @pytest.mark.asyncio
    async def test_knock_back_locks_in(self, client, make_user):
        a = await make_user()
        b = await make_user()
        knock = (await client.post("/knocks", json={"knocked_id": b}, headers=auth(a))).json()

        resp = await client.put(f"/knocks/{knock['id']}/knockback", headers=auth(b))

        assert resp.status_code == 200
        body = resp.json()
        assert {k["status"] for k in body["locked"]} == {"locked_in"}

        rel = (await client.get(f"/knocks/relationship/{b}", headers=auth(a))).json()
        assert rel["is_locked_in"] is True

        resp = await client.post("/knocks/break-lock", json={"counterpart_id": b}, headers=auth(a))
        assert resp.status_code == 200
        rel = (await client.get(f"/knocks/relationship/{b}", headers=auth(a))).json()
        assert rel["outgoing"] is None
        assert rel["incoming"]["status"] == "onesided"

    @pytest.mark.asyncio
    async def test_domain_errors_map_to_status_codes(self, client, make_user):
        a = await make_user()
        b = await make_user()

        resp = await client.post("/knocks", json={"knocked_id": a}, headers=auth(a))
        assert resp.status_code == 400
        assert resp.json() == {"ok": False, "error": "self_target", "details": "You cannot knock yourself."}

        resp = await client.post("/knocks", json={"knocked_id": 9999}, headers=auth(a))
        assert resp.status_code == 404
        assert resp.json()["error"] == "target_not_found"

        await client.post("/knocks", json={"knocked_id": b}, headers=auth(a))
        resp = await client.post("/knocks", json={"knocked_id": b}, headers=auth(a))
        assert resp.status_code == 409
        assert resp.json()["error"] == "duplicate_edge"

        resp = await client.put("/knocks/31337/decline", headers=auth(b))
        assert resp.status_code == 404
        assert resp.json()["error"] == "edge_not_eligible"

    @pytest.mark.asyncio
    async def test_unknock(self, client, make_user):
        a = await make_user()
        b = await make_user()
        knock = (await client.post("/knocks", json={"knocked_id": b}, headers=auth(a))).json()

        resp = await client.delete(f"/knocks/{knock['id']}/unknock", headers=auth(a))
        assert resp.status_code == 200

        resp = await client.delete(f"/knocks/{knock['id']}/unknock", headers=auth(a))
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_private_knockers_hidden(self, client, make_user):
        a = await make_user()
        b = await make_user(is_private=True)

        resp = await client.get(f"/knocks/knockers-for-user/{b}", headers=auth(a))
        assert resp.status_code == 403
        assert resp.json()["error"] == "profile_hidden"


class TestChatRoutes:

    @pytest.mark.asyncio
    async def test_restricted_chat_flow(self, client, make_user):
        a = await make_user()
        b = await make_user(is_private=True)

        resp = await client.post("/chats", json={"recipient_id": b}, headers=auth(a))
        assert resp.status_code == 200
        body = resp.json()
        assert body["created"] is True
        assert body["access"]["is_restricted"] is True
        assert body["access"]["opened_by"] == a
        chat_id = body["chat_id"]

        resp = await client.post(f"/chats/{chat_id}/messages", json={"text": "hi"}, headers=auth(a))
        assert resp.status_code == 201
        assert resp.json()["access"]["allow"] is False

        resp = await client.post(f"/chats/{chat_id}/messages", json={"text": "hi?"}, headers=auth(a))
        assert resp.status_code == 403
        assert resp.json()["error"] == "chat_restricted"

        resp = await client.post(f"/chats/{chat_id}/messages", json={"text": "hello"}, headers=auth(b))
        assert resp.status_code == 201
        assert resp.json()["access"]["state"] == "locked_open"

        access = (await client.get(f"/chats/{chat_id}/access", headers=auth(a))).json()
        assert access["is_restricted"] is False
        assert access["allow"] is True

        messages = (await client.get(f"/chats/{chat_id}/messages", headers=auth(b))).json()
        assert [m["text"] for m in messages] == ["hi", "hello"]

    @pytest.mark.asyncio
    async def test_outsider_gets_404(self, client, make_user):
        a = await make_user()
        b = await make_user()
        c = await make_user()
        chat_id = (await client.post("/chats", json={"recipient_id": b}, headers=auth(a))).json()["chat_id"]

        resp = await client.get(f"/chats/{chat_id}/messages", headers=auth(c))
        assert resp.status_code == 404
        assert resp.json()["error"] == "chat_not_found"

    @pytest.mark.asyncio
    async def test_chat_list_shows_gate(self, client, make_user):
        a = await make_user()
        b = await make_user(is_private=True)
        chat_id = (await client.post("/chats", json={"recipient_id": b}, headers=auth(a))).json()["chat_id"]
        await client.post(f"/chats/{chat_id}/messages", json={"text": "hi"}, headers=auth(a))

        resp = await client.get("/chats", headers=auth(a))
        assert resp.status_code == 200
        [summary] = resp.json()
        assert summary["chat_id"] == chat_id
        assert summary["counterpart_id"] == b
        assert summary["access"]["is_restricted"] is True
        assert summary["access"]["opened_by"] == a
        assert summary["access"]["allow"] is False

        [summary] = (await client.get("/chats", headers=auth(b))).json()
        assert summary["counterpart_id"] == a
        assert summary["access"]["allow"] is True


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.json() == {"ok": True}

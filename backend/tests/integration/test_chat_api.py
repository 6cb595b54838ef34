"""
Integration tests for the chat HTTP API.

Runs the full FastAPI app in-process over httpx.ASGITransport, with a real
SQLite repository in a temporary file.
"""

import asyncio

import httpx
import pytest

from main import create_app

pytestmark = pytest.mark.integration

ADMIN_HEADERS = {"Authorization": "Bearer carlos-token"}
OTHER_ADMIN_HEADERS = {"Authorization": "Bearer bia-token"}


@pytest.fixture
def app(chat_repo, auth_provider):
    return create_app(chat_repo=chat_repo, auth_provider=auth_provider)


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _create_chat(client, **payload):
    response = await client.post("/api/chats", json=payload)
    assert response.status_code == 201
    return response.json()["id"]


class TestPublicChatApi:
    """Widget-facing routes."""

    @pytest.mark.asyncio
    async def test_create_and_fetch(self, client):
        chat_id = await _create_chat(client, name="Ana", email="ana@example.com")

        response = await client.get(f"/api/chats/{chat_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == chat_id
        assert body["name"] == "Ana"
        assert body["messages"] == []
        assert body["status"] == "open"
        assert body["assignedAdmin"] is None
        assert "createdAt" in body

    @pytest.mark.asyncio
    async def test_anonymous_default_name(self, client):
        chat_id = await _create_chat(client)
        body = (await client.get(f"/api/chats/{chat_id}")).json()
        assert body["name"] == "Anônimo"

    @pytest.mark.asyncio
    async def test_unknown_chat_is_404(self, client):
        assert (await client.get("/api/chats/nope")).status_code == 404
        response = await client.post("/api/chats/nope/message", json={"text": "Oi"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_post_user_message(self, client):
        chat_id = await _create_chat(client, name="Ana")

        response = await client.post(f"/api/chats/{chat_id}/message", json={"text": "Oi", "from": "user"})

        assert response.status_code == 201
        message = response.json()["message"]
        assert message["seq"] == 1
        assert message["from"] == "user"
        assert message["text"] == "Oi"
        body = (await client.get(f"/api/chats/{chat_id}")).json()
        assert body["unread"] is True
        assert body["messages"] == [message]

    @pytest.mark.asyncio
    async def test_blank_message_is_422(self, client):
        chat_id = await _create_chat(client)
        response = await client.post(f"/api/chats/{chat_id}/message", json={"text": "   "})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_admin_reply_requires_admin_token(self, client):
        chat_id = await _create_chat(client)
        url = f"/api/chats/{chat_id}/message"

        anonymous = await client.post(url, json={"text": "Olá", "from": "admin"})
        visitor = await client.post(
            url, json={"text": "Olá", "from": "admin"}, headers={"Authorization": "Bearer visitor"}
        )
        admin = await client.post(url, json={"text": "Olá", "from": "admin"}, headers=ADMIN_HEADERS)

        assert anonymous.status_code == 403
        assert visitor.status_code == 403
        assert admin.status_code == 201
        assert admin.json()["message"]["author"] == "Carlos"

    @pytest.mark.asyncio
    async def test_malformed_authorization_is_401(self, client):
        chat_id = await _create_chat(client)
        response = await client.post(
            f"/api/chats/{chat_id}/message",
            json={"text": "Oi"},
            headers={"Authorization": "Token abc"},
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_concurrent_posts_are_all_stored_in_order(self, client):
        chat_id = await _create_chat(client)

        responses = await asyncio.gather(*[
            client.post(f"/api/chats/{chat_id}/message", json={"text": f"msg {i}"})
            for i in range(10)
        ])

        assert all(r.status_code == 201 for r in responses)
        messages = (await client.get(f"/api/chats/{chat_id}")).json()["messages"]
        assert [m["seq"] for m in messages] == list(range(1, 11))
        assert sorted(m["text"] for m in messages) == sorted(f"msg {i}" for i in range(10))


class TestAdminChatApi:
    """Admin console routes."""

    @pytest.mark.asyncio
    async def test_admin_routes_require_admin(self, client):
        assert (await client.get("/api/admin/chats")).status_code == 401
        visitor = await client.get("/api/admin/chats", headers={"Authorization": "Bearer visitor"})
        assert visitor.status_code == 403

    @pytest.mark.asyncio
    async def test_list_and_filter(self, client):
        open_id = await _create_chat(client, name="A")
        closed_id = await _create_chat(client, name="B")
        await client.post(f"/api/admin/chats/{closed_id}/close", headers=ADMIN_HEADERS)

        everything = await client.get("/api/admin/chats", headers=ADMIN_HEADERS)
        closed = await client.get("/api/admin/chats?status=closed", headers=ADMIN_HEADERS)

        assert {c["id"] for c in everything.json()} == {open_id, closed_id}
        assert [c["id"] for c in closed.json()] == [closed_id]

    @pytest.mark.asyncio
    async def test_assign_conflict_and_release(self, client):
        chat_id = await _create_chat(client)
        url = f"/api/admin/chats/{chat_id}"

        first = await client.post(f"{url}/assign", headers=ADMIN_HEADERS)
        again = await client.post(f"{url}/assign", headers=ADMIN_HEADERS)
        other = await client.post(f"{url}/assign", headers=OTHER_ADMIN_HEADERS)

        assert first.status_code == 200
        assert first.json()["assignedAdmin"] == "Carlos"
        assert again.status_code == 200
        assert other.status_code == 409

        released = await client.post(f"{url}/unassign", headers=ADMIN_HEADERS)
        assert released.json()["assignedAdmin"] is None
        taken = await client.post(f"{url}/assign", headers=OTHER_ADMIN_HEADERS)
        assert taken.json()["assignedAdmin"] == "Bia"

    @pytest.mark.asyncio
    async def test_concurrent_claims_single_winner(self, client):
        chat_id = await _create_chat(client)

        responses = await asyncio.gather(
            client.post(f"/api/admin/chats/{chat_id}/assign", headers=ADMIN_HEADERS),
            client.post(f"/api/admin/chats/{chat_id}/assign", headers=OTHER_ADMIN_HEADERS),
        )

        assert sorted(r.status_code for r in responses) == [200, 409]

    @pytest.mark.asyncio
    async def test_close_blocks_messages_and_reopen(self, client):
        chat_id = await _create_chat(client)

        closed = await client.post(f"/api/admin/chats/{chat_id}/close", headers=ADMIN_HEADERS)
        assert closed.json()["status"] == "closed"
        rejected = await client.post(f"/api/chats/{chat_id}/message", json={"text": "Oi"})
        assert rejected.status_code == 409

        reopened = await client.post(
            f"/api/admin/chats/{chat_id}/close", json={"close": False}, headers=ADMIN_HEADERS
        )
        assert reopened.json()["status"] == "open"
        accepted = await client.post(f"/api/chats/{chat_id}/message", json={"text": "Oi"})
        assert accepted.status_code == 201

    @pytest.mark.asyncio
    async def test_mark_read(self, client):
        chat_id = await _create_chat(client)
        await client.post(f"/api/chats/{chat_id}/message", json={"text": "Oi"})

        response = await client.post(f"/api/admin/chats/{chat_id}/mark-read", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        assert response.json()["unread"] is False

    @pytest.mark.asyncio
    async def test_delete(self, client):
        chat_id = await _create_chat(client)

        deleted = await client.delete(f"/api/admin/chats/{chat_id}", headers=ADMIN_HEADERS)
        assert deleted.status_code == 204
        assert (await client.get(f"/api/chats/{chat_id}")).status_code == 404
        again = await client.delete(f"/api/admin/chats/{chat_id}", headers=ADMIN_HEADERS)
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_export(self, client):
        chat_id = await _create_chat(client, name="Ana")
        await client.post(f"/api/chats/{chat_id}/message", json={"text": "Oi"})

        as_json = await client.get(f"/api/admin/chats/{chat_id}/export", headers=ADMIN_HEADERS)
        as_txt = await client.get(
            f"/api/admin/chats/{chat_id}/export?format=txt", headers=ADMIN_HEADERS
        )

        assert as_json.status_code == 200
        assert as_json.json()["messages"][0]["text"] == "Oi"
        assert f'filename="chat-{chat_id}.json"' in as_json.headers["content-disposition"]
        assert as_txt.headers["content-type"].startswith("text/plain")
        assert "Ana: Oi" in as_txt.text


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["connections"] == 0
    assert response.json()["admins"] == 0

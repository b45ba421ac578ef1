"""
Memora Backend — API Tests (auth, notes, health, middleware)
=============================================================

What:  HTTP behaviour of everything except the attachment routes.
How:   httpx AsyncClient over ASGITransport against the real app, with
       get_db_session pointed at the per-test SQLite database.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

REGISTRATION = {
    "full_name": "Grace Hopper",
    "email": "grace@example.com",
    "password": "Cobol@1959x",
}


class TestAuthEndpoints:

    async def test_register_then_login(self, client):
        registered = await client.post("/api/auth/register", json=REGISTRATION)
        logged_in = await client.post(
            "/api/auth/login",
            json={"email": "Grace@Example.com", "password": REGISTRATION["password"]},
        )

        assert registered.status_code == 201
        assert registered.json()["user"]["email"] == "grace@example.com"
        assert "password_hash" not in registered.json()["user"]
        assert logged_in.status_code == 200
        assert logged_in.json()["token"]

    async def test_duplicate_registration_conflicts(self, client):
        await client.post("/api/auth/register", json=REGISTRATION)
        response = await client.post("/api/auth/register", json=REGISTRATION)

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    async def test_weak_password_is_unprocessable(self, client):
        response = await client.post(
            "/api/auth/register", json={**REGISTRATION, "password": "weakpass"}
        )

        assert response.status_code == 422

    async def test_bad_credentials_are_unauthorized(self, client):
        await client.post("/api/auth/register", json=REGISTRATION)
        response = await client.post(
            "/api/auth/login", json={"email": "grace@example.com", "password": "Nope@1234x"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    async def test_token_from_register_authenticates(self, client):
        token = (await client.post("/api/auth/register", json=REGISTRATION)).json()["token"]

        response = await client.get("/api/notes", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200


class TestNoteEndpoints:

    async def test_crud_flow(self, client, create_user, auth_headers):
        headers = auth_headers(await create_user())

        created = await client.post(
            "/api/notes", json={"title": " Ideas ", "content": "Build a boat"}, headers=headers
        )
        note_id = created.json()["id"]
        updated = await client.put(
            f"/api/notes/{note_id}", json={"title": "", "content": "Build a bigger boat"},
            headers=headers,
        )
        fetched = await client.get(f"/api/notes/{note_id}", headers=headers)
        deleted = await client.delete(f"/api/notes/{note_id}", headers=headers)
        gone = await client.get(f"/api/notes/{note_id}", headers=headers)

        assert created.status_code == 201
        assert created.json()["title"] == "Ideas"
        assert updated.status_code == 200
        assert updated.json()["title"] is None
        assert fetched.json()["content"] == "Build a bigger boat"
        assert fetched.json()["attachments"] == []
        assert deleted.status_code == 204
        assert gone.status_code == 404

    async def test_blank_content_is_unprocessable(self, client, create_user, auth_headers):
        headers = auth_headers(await create_user())

        response = await client.post("/api/notes", json={"content": "   "}, headers=headers)

        assert response.status_code == 422

    async def test_list_pagination_and_total_header(
        self, client, create_user, create_note, auth_headers
    ):
        user = await create_user()
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for i in range(3):
            await create_note(user, title=f"N{i}", updated_at=base + timedelta(minutes=i))

        response = await client.get(
            "/api/notes", params={"page": 1, "page_size": 2}, headers=auth_headers(user)
        )

        assert response.status_code == 200
        assert response.headers["X-Total-Count"] == "3"
        body = response.json()
        assert [n["title"] for n in body["notes"]] == ["N2", "N1"]
        assert body["has_next"] is True
        assert body["total_pages"] == 2

    @pytest.mark.parametrize("params", [{"page": 0}, {"page_size": 0}, {"page_size": 101}])
    async def test_invalid_paging_is_unprocessable(self, client, create_user, auth_headers, params):
        response = await client.get(
            "/api/notes", params=params, headers=auth_headers(await create_user())
        )

        assert response.status_code == 422

    async def test_search(self, client, create_user, create_note, auth_headers):
        user = await create_user()
        await create_note(user, title="Recipes", content="pancakes")
        await create_note(user, title="Chores", content="laundry")

        response = await client.get(
            "/api/notes", params={"search": "PANCAKE"}, headers=auth_headers(user)
        )

        assert [n["title"] for n in response.json()["notes"]] == ["Recipes"]

    async def test_foreign_note_is_not_found_for_every_verb(
        self, client, create_user, create_note, auth_headers
    ):
        note = await create_note(await create_user())
        intruder_headers = auth_headers(await create_user())
        path = f"/api/notes/{note.id}"

        assert (await client.get(path, headers=intruder_headers)).status_code == 404
        assert (
            await client.put(path, json={"content": "x"}, headers=intruder_headers)
        ).status_code == 404
        assert (await client.delete(path, headers=intruder_headers)).status_code == 404

    async def test_notes_require_authentication(self, client):
        response = await client.get("/api/notes")

        assert response.status_code == 401
        assert response.json()["error"] == "unauthenticated"


class TestHealthAndMiddleware:

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["uptime_seconds"] >= 0

    async def test_request_id_generated(self, client):
        response = await client.get("/health")

        assert len(response.headers["X-Request-ID"]) == 8

    async def test_request_id_propagated(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "trace-123"})

        assert response.headers["X-Request-ID"] == "trace-123"

    async def test_request_id_in_error_body(self, client):
        response = await client.get(
            f"/api/attachments/{uuid.uuid4()}", headers={"X-Request-ID": "err-42"}
        )

        assert response.json()["request_id"] == "err-42"

    async def test_malformed_request_id_replaced(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "bad id with spaces"})

        assert response.headers["X-Request-ID"] != "bad id with spaces"

    async def test_slow_request_logged(self, client, caplog, monkeypatch):
        from memora.config import settings

        monkeypatch.setattr(settings, "slow_request_threshold_ms", 0)
        caplog.set_level(logging.WARNING, logger="memora.performance")

        await client.get("/api/notes")

        assert any("Slow request" in record.getMessage() for record in caplog.records)

    async def test_request_id_on_unexpected_error(
        self, client, create_user, auth_headers, monkeypatch
    ):
        from memora.main import app
        from memora.services.attachment_service import attachment_service

        async def explode(*args, **kwargs):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(attachment_service, "get_metadata", explode)
        headers = {**auth_headers(await create_user()), "X-Request-ID": "trace-500"}

        # `client` installs the database override; this one keeps the 500 response
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as raw_client:
            response = await raw_client.get(f"/api/attachments/{uuid.uuid4()}", headers=headers)

        assert response.status_code == 500
        assert response.json()["request_id"] == "trace-500"
        assert response.json()["message"].startswith("An unexpected error occurred")
        assert response.headers["X-Request-ID"] == "trace-500"

"""HTTP-level tests: auth, request lifecycle, profile, directory."""
import uuid

import pytest

from conftest import SIGNED_TOKEN, auth_headers
from safespace.services.events import EVENT_NAME


async def _open_request(client, **token):
    response = await client.post("/v1/requests", headers=auth_headers(**token))
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.post("/v1/requests")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.json()["error_type"] == "AuthenticationError"

    @pytest.mark.asyncio
    async def test_expired_token(self, client):
        response = await client.post("/v1/requests", headers=auth_headers(expires_in=-60))
        assert response.status_code == 401
        assert response.json()["detail"] == "Token has expired"


class TestRequests:
    @pytest.mark.asyncio
    async def test_create_uses_metadata_name(self, client):
        user_id = uuid.uuid4()
        body = await _open_request(client, user_id=user_id, email="a@example.com", full_name="Alice")

        assert body["status"] == "pending"
        assert body["created_by"] == str(user_id)
        assert body["created_by_name"] == "Alice"
        assert body["accepted_by"] is None
        assert body["closed_at"] is None

    @pytest.mark.asyncio
    async def test_create_name_falls_back_to_email(self, client):
        body = await _open_request(client, email="quiet@example.com")
        assert body["created_by_name"] == "quiet@example.com"

    @pytest.mark.asyncio
    async def test_create_name_placeholder(self, client):
        body = await _open_request(client)
        assert body["created_by_name"] == "User"

    @pytest.mark.asyncio
    async def test_plain_user_cannot_list(self, client):
        response = await client.get("/v1/requests", headers=auth_headers(email="user@example.com"))
        assert response.status_code == 403
        assert response.json()["error_type"] == "NotSpecialistError"

    @pytest.mark.asyncio
    async def test_accept_once(self, client, add_specialist):
        s1 = await add_specialist("s1@example.com", "Specialist One")
        await add_specialist("s2@example.com", "Specialist Two")
        created = await _open_request(client, full_name="Alice")

        first = await client.post(
            f"/v1/requests/{created['id']}/accept", headers=auth_headers(email="s1@example.com")
        )
        second = await client.post(
            f"/v1/requests/{created['id']}/accept", headers=auth_headers(email="s2@example.com")
        )

        assert first.status_code == 200
        assert first.json()["status"] == "accepted"
        assert first.json()["accepted_by"] == s1.id
        assert second.status_code == 409
        assert second.json()["error_type"] == "AlreadyClaimedError"
        assert second.json()["details"]["current_status"] == "accepted"

    @pytest.mark.asyncio
    async def test_plain_user_cannot_accept(self, client):
        created = await _open_request(client)
        response = await client.post(
            f"/v1/requests/{created['id']}/accept", headers=auth_headers(email="user@example.com")
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    @pytest.mark.parametrize("request_id", [str(uuid.uuid4()), "nonexistent-id"])
    async def test_accept_unknown(self, client, add_specialist, request_id):
        await add_specialist("s1@example.com")
        response = await client.post(
            f"/v1/requests/{request_id}/accept", headers=auth_headers(email="s1@example.com")
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_scopes(self, client, add_specialist):
        await add_specialist("s1@example.com")
        await add_specialist("s2@example.com")
        mine = await _open_request(client)
        theirs = await _open_request(client)
        waiting = await _open_request(client)
        await client.post(f"/v1/requests/{mine['id']}/accept", headers=auth_headers(email="s1@example.com"))
        await client.post(f"/v1/requests/{theirs['id']}/accept", headers=auth_headers(email="s2@example.com"))

        all_response = await client.get("/v1/requests", headers=auth_headers(email="s1@example.com"))
        mine_response = await client.get(
            "/v1/requests", params={"scope": "mine"}, headers=auth_headers(email="s1@example.com")
        )

        assert {r["id"] for r in all_response.json()} == {mine["id"], theirs["id"], waiting["id"]}
        assert [r["id"] for r in mine_response.json()] == [mine["id"]]

    @pytest.mark.asyncio
    async def test_invalid_scope(self, client, add_specialist):
        await add_specialist("s1@example.com")
        response = await client.get(
            "/v1/requests", params={"scope": "others"}, headers=auth_headers(email="s1@example.com")
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_close(self, client, add_specialist):
        await add_specialist("s1@example.com")
        await add_specialist("s2@example.com")
        created = await _open_request(client)
        url = f"/v1/requests/{created['id']}"

        early = await client.post(f"{url}/close", headers=auth_headers(email="s1@example.com"))
        await client.post(f"{url}/accept", headers=auth_headers(email="s1@example.com"))
        by_other = await client.post(f"{url}/close", headers=auth_headers(email="s2@example.com"))
        by_owner = await client.post(f"{url}/close", headers=auth_headers(email="s1@example.com"))

        assert early.status_code == 409
        assert by_other.status_code == 403
        assert by_owner.status_code == 200
        assert by_owner.json()["status"] == "closed"
        assert by_owner.json()["closed_at"] is not None

    @pytest.mark.asyncio
    async def test_pending_count(self, client, add_specialist):
        await add_specialist("s1@example.com")
        headers = auth_headers(email="s1@example.com")
        first = await _open_request(client)
        await _open_request(client)

        assert (await client.get("/v1/requests/pending/count", headers=headers)).json() == {"pending": 2}
        await client.post(f"/v1/requests/{first['id']}/accept", headers=headers)
        assert (await client.get("/v1/requests/pending/count", headers=headers)).json() == {"pending": 1}

    @pytest.mark.asyncio
    async def test_changes_are_published(self, app, client, add_specialist):
        await add_specialist("s1@example.com")

        async with app.state.events.subscribe() as events:
            created = await _open_request(client)
            await client.post(
                f"/v1/requests/{created['id']}/accept", headers=auth_headers(email="s1@example.com")
            )

            first = events.get_nowait()
            second = events.get_nowait()

        assert (first.type, first.status, first.request_id) == ("created", "pending", created["id"])
        assert (second.type, second.status) == ("accepted", "accepted")
        assert EVENT_NAME in first.to_sse()

    @pytest.mark.asyncio
    async def test_failed_accept_publishes_nothing(self, app, client, add_specialist):
        await add_specialist("s1@example.com")

        async with app.state.events.subscribe() as events:
            await client.post(
                f"/v1/requests/{uuid.uuid4()}/accept", headers=auth_headers(email="s1@example.com")
            )
            assert events.empty()


class TestProfile:
    @pytest.mark.asyncio
    async def test_plain_user_profile(self, client):
        user_id = uuid.uuid4()
        response = await client.get("/v1/profile", headers=auth_headers(user_id=user_id, email="ana@example.com"))

        body = response.json()
        assert response.status_code == 200
        assert body["user_id"] == str(user_id)
        assert body["initial"] == "A"
        assert body["color"].startswith("#")
        assert body["avatar_url"] is None
        assert body["specialist"] is None

    @pytest.mark.asyncio
    async def test_save_profile_creates_directory_entry(self, client):
        headers = auth_headers(email="new@example.com")
        response = await client.put(
            "/v1/profile",
            json={"fullname": "New Person", "phone": "0722123456", "website": "https://new.ro"},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["email"] == "new@example.com"
        assert response.json()["is_verified"] is False

        profile = (await client.get("/v1/profile", headers=headers)).json()
        assert profile["display_name"] == "New Person"
        assert profile["specialist"]["phone"] == "0722123456"

    @pytest.mark.asyncio
    async def test_save_profile_validation(self, client):
        response = await client.put(
            "/v1/profile", json={"fullname": "Ana", "phone": "123"}, headers=auth_headers(email="a@example.com")
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_save_profile_requires_email(self, client):
        response = await client.put("/v1/profile", json={"fullname": "Ana"}, headers=auth_headers())
        assert response.status_code == 422
        assert response.json()["error_type"] == "ValidationError"

    @pytest.mark.asyncio
    async def test_avatar_upload(self, client, add_specialist, storage):
        await add_specialist("doc@example.com")
        user_id = uuid.uuid4()
        headers = auth_headers(user_id=user_id, email="doc@example.com")

        response = await client.post(
            "/v1/profile/avatar",
            files={"file": ("me.png", b"\x89PNG-bytes", "image/png")},
            data={"alt": "Portrait"},
            headers=headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["avatar_path"].startswith(f"{user_id}/avatar-")
        assert body["avatar_path"].endswith(".png")
        assert body["avatar_url"].endswith(f"?token={SIGNED_TOKEN}")
        assert any(r.headers.get("x-upsert") == "true" for r in storage.requests)

        profile = (await client.get("/v1/profile", headers=headers)).json()
        assert profile["specialist"]["avatar_path"] == body["avatar_path"]
        assert profile["specialist"]["avatar_alt"] == "Portrait"
        assert profile["avatar_url"] is not None

    @pytest.mark.asyncio
    async def test_avatar_must_be_image(self, client, add_specialist, storage):
        await add_specialist("doc@example.com")
        response = await client.post(
            "/v1/profile/avatar",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=auth_headers(email="doc@example.com"),
        )
        assert response.status_code == 422
        assert storage.requests == []

    @pytest.mark.asyncio
    async def test_avatar_requires_specialist(self, client):
        response = await client.post(
            "/v1/profile/avatar",
            files={"file": ("me.png", b"x", "image/png")},
            headers=auth_headers(email="user@example.com"),
        )
        assert response.status_code == 403


class TestSpecialists:
    @pytest.mark.asyncio
    async def test_list(self, client, add_specialist):
        await add_specialist("s1@example.com", "One")
        response = await client.get("/v1/specialists", headers=auth_headers(email="anyone@example.com"))
        assert response.status_code == 200
        assert [s["fullname"] for s in response.json()] == ["One"]

    @pytest.mark.asyncio
    async def test_create_requires_verified_specialist(self, client, add_specialist):
        await add_specialist("pending@example.com", is_verified=False)
        payload = {"fullname": "Dr. New", "email": "dr.new@example.com"}

        as_user = await client.post("/v1/specialists", json=payload, headers=auth_headers(email="u@example.com"))
        as_unverified = await client.post(
            "/v1/specialists", json=payload, headers=auth_headers(email="pending@example.com")
        )

        assert as_user.status_code == 403
        assert as_unverified.status_code == 403

    @pytest.mark.asyncio
    async def test_create_and_update(self, client, add_specialist):
        await add_specialist("admin@example.com", "Admin")
        headers = auth_headers(email="admin@example.com")

        created = await client.post(
            "/v1/specialists", json={"fullname": "Dr. New", "email": "Dr.New@example.com"}, headers=headers
        )
        assert created.status_code == 201
        assert created.json()["email"] == "dr.new@example.com"

        updated = await client.patch(
            f"/v1/specialists/{created.json()['id']}", json={"is_verified": True}, headers=headers
        )
        assert updated.status_code == 200
        assert updated.json()["is_verified"] is True
        assert updated.json()["fullname"] == "Dr. New"

    @pytest.mark.asyncio
    async def test_update_missing(self, client, add_specialist):
        await add_specialist("admin@example.com", "Admin")
        response = await client.patch(
            "/v1/specialists/999", json={"fullname": "Nobody"}, headers=auth_headers(email="admin@example.com")
        )
        assert response.status_code == 404


class TestAvatarLifecycle:
    @pytest.mark.asyncio
    async def test_saving_profile_keeps_avatar_alt(self, client, add_specialist):
        await add_specialist("doc@example.com")
        headers = auth_headers(email="doc@example.com")
        await client.post(
            "/v1/profile/avatar",
            files={"file": ("me.png", b"\x89PNG-bytes", "image/png")},
            data={"alt": "Portrait"},
            headers=headers,
        )

        saved = await client.put("/v1/profile", json={"fullname": "Doc Person"}, headers=headers)

        assert saved.status_code == 200
        assert saved.json()["fullname"] == "Doc Person"
        assert saved.json()["avatar_alt"] == "Portrait"

    @pytest.mark.asyncio
    async def test_saving_profile_can_change_avatar_alt(self, client, add_specialist):
        await add_specialist("doc@example.com")
        headers = auth_headers(email="doc@example.com")

        saved = await client.put(
            "/v1/profile", json={"fullname": "Doc Person", "avatar_alt": " Smiling "}, headers=headers
        )
        assert saved.json()["avatar_alt"] == "Smiling"

    @pytest.mark.asyncio
    async def test_failed_save_removes_uploaded_object(self, client, add_specialist, storage, monkeypatch):
        from safespace.exceptions import PersistenceError
        from safespace.services.directory import Directory

        async def failing_set_avatar(self, specialist_id, path, alt=None):
            raise PersistenceError("Failed to set_avatar specialist")

        monkeypatch.setattr(Directory, "set_avatar", failing_set_avatar)
        await add_specialist("doc@example.com")

        response = await client.post(
            "/v1/profile/avatar",
            files={"file": ("me.png", b"\x89PNG-bytes", "image/png")},
            headers=auth_headers(email="doc@example.com"),
        )

        assert response.status_code == 503
        uploads = [r for r in storage.requests if r.method == "POST"]
        deletes = [r for r in storage.requests if r.method == "DELETE"]
        assert len(uploads) == 1
        assert len(deletes) == 1
        assert deletes[0].url.path == uploads[0].url.path


def test_storage_client_opened_by_lifespan():
    from safespace.main import create_app

    assert not hasattr(create_app().state, "object_store")

"""
Marketplace Backend: User & Profile API Tests
=============================================

/api/users and /api/profiles end to end against an in-memory database.
"""

import uuid

import pytest

from conftest import bearer, encode_token


class TestAuthentication:

    @pytest.mark.asyncio
    async def test_missing_token(self, test_client):
        response = await test_client.get("/api/users/me")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        body = response.json()
        assert body["error"] == "unauthorized"
        assert body["message"] == "Not authenticated"
        assert body["requestId"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_expired_token(self, test_client):
        headers = bearer(encode_token(uuid.uuid4(), expires_in=-60))
        response = await test_client.get("/api/users/me", headers=headers)

        assert response.status_code == 401
        assert response.json()["message"] == "Token has expired"

    @pytest.mark.asyncio
    async def test_forged_token(self, test_client):
        headers = bearer(encode_token(uuid.uuid4(), secret="not-the-real-signing-secret!"))
        response = await test_client.get("/api/users/me", headers=headers)

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"

    @pytest.mark.asyncio
    async def test_non_bearer_scheme(self, test_client):
        response = await test_client.get("/api/users/me", headers={"Authorization": "Basic abc"})
        assert response.status_code == 401


class TestUsers:

    @pytest.mark.asyncio
    async def test_first_request_provisions_user(self, test_client):
        user_id = uuid.uuid4()
        headers = bearer(encode_token(user_id, email="new@example.com"))

        response = await test_client.get("/api/users/me", headers=headers)

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == str(user_id)
        assert body["email"] == "new@example.com"
        assert body["firstName"] is None
        assert body["profileImageUrl"] is None

    @pytest.mark.asyncio
    async def test_get_user_by_id(self, test_client, signup):
        account = await signup(first_name="Ada")

        response = await test_client.get(f"/api/users/{account.id}")

        assert response.status_code == 200
        assert response.json()["firstName"] == "Ada"

    @pytest.mark.asyncio
    async def test_get_unknown_user(self, test_client):
        response = await test_client.get(f"/api/users/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["message"] == "User not found"

    @pytest.mark.asyncio
    async def test_malformed_user_id(self, test_client):
        response = await test_client.get("/api/users/not-a-uuid")

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "user_id"

    @pytest.mark.asyncio
    async def test_update_names(self, test_client, signup):
        account = await signup()

        response = await test_client.put(
            "/api/users",
            json={"firstName": "  Grace ", "lastName": "Hopper"},
            headers=account.headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["firstName"] == "Grace"
        assert body["lastName"] == "Hopper"
        assert body["updatedAt"] is not None

    @pytest.mark.asyncio
    async def test_partial_update_keeps_other_fields(self, test_client, signup):
        account = await signup(first_name="Linus")

        response = await test_client.put(
            "/api/users", json={"lastName": "Torvalds"}, headers=account.headers
        )

        assert response.json()["firstName"] == "Linus"
        assert response.json()["lastName"] == "Torvalds"

    @pytest.mark.asyncio
    async def test_update_rejects_bad_image_url(self, test_client, signup):
        account = await signup()

        response = await test_client.put(
            "/api/users", json={"profileImageUrl": "javascript:alert(1)"}, headers=account.headers
        )

        assert response.status_code == 400
        body = response.json()
        assert body["details"]["field"] == "profileImageUrl"
        assert "http(s) URL" in body["message"]

    @pytest.mark.asyncio
    async def test_update_requires_auth(self, test_client):
        response = await test_client.put("/api/users", json={"firstName": "X"})
        assert response.status_code == 401


class TestAvatar:

    @pytest.mark.asyncio
    async def test_upload_sets_versioned_url(self, test_client, signup, make_image):
        account = await signup()

        response = await test_client.post(
            "/api/users/avatar",
            files={"file": ("me.png", make_image("PNG"), "image/png")},
            headers=account.headers,
        )

        assert response.status_code == 200, response.text
        url = response.json()["profileImageUrl"]
        assert url.startswith(f"/api/files/avatars/{account.id}/avatar.png?t=")

        served = await test_client.get(url.split("?")[0])
        assert served.status_code == 200
        assert served.content == make_image("PNG")
        assert served.headers["content-type"] == "image/png"

    @pytest.mark.asyncio
    async def test_upload_rejects_unsupported_content(self, test_client, signup, make_image):
        account = await signup()

        response = await test_client.post(
            "/api/users/avatar",
            files={"file": ("me.png", make_image("GIF"), "image/png")},
            headers=account.headers,
        )

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "file"

    @pytest.mark.asyncio
    async def test_upload_rejects_oversized_file(self, test_client, signup):
        account = await signup()

        response = await test_client.post(
            "/api/users/avatar",
            files={"file": ("big.jpg", b"\xff" * (2 * 1024 * 1024 + 1), "image/jpeg")},
            headers=account.headers,
        )

        assert response.status_code == 400
        assert "2MB" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_upload_without_file(self, test_client, signup):
        account = await signup()
        response = await test_client.post("/api/users/avatar", headers=account.headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_clears_url_and_file(self, test_client, signup, make_image):
        account = await signup()
        uploaded = await test_client.post(
            "/api/users/avatar",
            files={"file": ("me.webp", make_image("WEBP"), "image/webp")},
            headers=account.headers,
        )
        path = uploaded.json()["profileImageUrl"].split("?")[0]

        response = await test_client.delete("/api/users/avatar", headers=account.headers)

        assert response.status_code == 200
        assert response.json()["profileImageUrl"] is None
        assert (await test_client.get(path)).status_code == 404


class TestProfiles:

    @pytest.mark.asyncio
    async def test_first_put_creates_client_profile(self, test_client, signup):
        account = await signup()

        response = await test_client.put(
            "/api/profiles", json={"bio": "I hire people"}, headers=account.headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["userId"] == str(account.id)
        assert body["role"] == "client"
        assert body["skills"] == []
        assert body["availabilityStatus"] == "available"
        assert body["bio"] == "I hire people"

    @pytest.mark.asyncio
    async def test_later_put_patches(self, test_client, signup):
        account = await signup(role="developer")

        response = await test_client.put(
            "/api/profiles",
            json={
                "skills": ["Python", " FastAPI", "python", "Python", ""],
                "experienceLevel": "senior",
                "portfolioLinks": [{"label": "GitHub", "url": "https://github.com/x"}],
            },
            headers=account.headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["role"] == "developer"
        assert body["skills"] == ["Python", "FastAPI", "python"]
        assert body["experienceLevel"] == "senior"
        assert body["portfolioLinks"][0]["label"] == "GitHub"

    @pytest.mark.asyncio
    async def test_get_profile(self, test_client, signup):
        account = await signup(role="developer")

        response = await test_client.get(f"/api/profiles/{account.id}")

        assert response.status_code == 200
        assert response.json()["role"] == "developer"

    @pytest.mark.asyncio
    async def test_get_missing_profile(self, test_client, signup):
        account = await signup()

        response = await test_client.get(f"/api/profiles/{account.id}")

        assert response.status_code == 404
        assert response.json()["message"] == "Profile not found"

    @pytest.mark.asyncio
    async def test_invalid_availability(self, test_client, signup):
        account = await signup()

        response = await test_client.put(
            "/api/profiles", json={"availabilityStatus": "on_vacation"}, headers=account.headers
        )

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "availabilityStatus"

"""Tests for the token endpoints."""

import pytest

from tests.conftest import TEST_CLIENT_ID, TEST_CLIENT_SECRET

pytestmark = pytest.mark.asyncio


def credentials(**overrides) -> dict:
    data = {
        "client_id": TEST_CLIENT_ID,
        "client_secret": TEST_CLIENT_SECRET,
        "grant_type": "client_credentials",
    }
    data.update(overrides)
    return data


async def issue(async_client) -> dict:
    response = await async_client.post("/auth/token", json=credentials())
    assert response.status_code == 200
    return response.json()


class TestTokenEndpoint:
    async def test_issue_token(self, async_client, client_factory):
        await client_factory()

        body = await issue(async_client)

        assert body["token_type"] == "Bearer"
        assert body["expires_in"] == 3600
        assert body["access_token"] != body["refresh_token"]

    @pytest.mark.parametrize("missing", ["client_id", "client_secret", "grant_type"])
    async def test_missing_parameter(self, async_client, missing):
        data = credentials()
        del data[missing]

        response = await async_client.post("/auth/token", json=data)

        assert response.status_code == 400
        assert response.json() == {
            "error": "invalid_request",
            "error_description": "Missing required parameters: client_id, client_secret, grant_type",
        }

    async def test_empty_body(self, async_client):
        response = await async_client.post("/auth/token")
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    async def test_malformed_body(self, async_client):
        response = await async_client.post(
            "/auth/token", content=b"{nope", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    async def test_unsupported_grant_type(self, async_client, client_factory):
        await client_factory()
        response = await async_client.post("/auth/token", json=credentials(grant_type="password"))

        assert response.status_code == 400
        assert response.json() == {
            "error": "unsupported_grant_type",
            "error_description": "Only client_credentials grant type is supported",
        }

    @pytest.mark.parametrize(
        "overrides",
        [{"client_secret": "wrong"}, {"client_id": "nobody"}],
    )
    async def test_invalid_client(self, async_client, client_factory, overrides):
        await client_factory()

        response = await async_client.post("/auth/token", json=credentials(**overrides))

        assert response.status_code == 401
        assert response.json() == {
            "error": "invalid_client",
            "error_description": "Client authentication failed",
        }
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_inactive_client(self, async_client, client_factory):
        await client_factory(is_active=False)
        response = await async_client.post("/auth/token", json=credentials())
        assert response.status_code == 401
        assert response.json()["error"] == "invalid_client"


class TestRefreshEndpoint:
    async def test_refresh(self, async_client, client_factory):
        await client_factory()
        first = await issue(async_client)

        response = await async_client.post(
            "/auth/refresh",
            json={"refresh_token": first["refresh_token"], "grant_type": "refresh_token"},
        )

        assert response.status_code == 200
        second = response.json()
        assert second["access_token"] != first["access_token"]
        assert second["refresh_token"] != first["refresh_token"]
        assert second["expires_in"] == 3600

    async def test_replay_rejected(self, async_client, client_factory):
        await client_factory()
        first = await issue(async_client)
        payload = {"refresh_token": first["refresh_token"], "grant_type": "refresh_token"}

        assert (await async_client.post("/auth/refresh", json=payload)).status_code == 200
        response = await async_client.post("/auth/refresh", json=payload)

        assert response.status_code == 401
        assert response.json() == {
            "error": "invalid_grant",
            "error_description": "Invalid or expired refresh token",
        }

    async def test_old_access_token_dead_after_refresh(self, async_client, client_factory):
        await client_factory()
        first = await issue(async_client)
        await async_client.post(
            "/auth/refresh",
            json={"refresh_token": first["refresh_token"], "grant_type": "refresh_token"},
        )

        response = await async_client.get(
            "/proxy/booking_engine/status",
            headers={"Authorization": f"Bearer {first['access_token']}"},
        )
        assert response.status_code == 401

    async def test_missing_parameters(self, async_client):
        response = await async_client.post("/auth/refresh", json={"grant_type": "refresh_token"})
        assert response.status_code == 400
        assert response.json()["error_description"] == (
            "Missing required parameters: refresh_token, grant_type"
        )

    async def test_wrong_grant_type(self, async_client):
        response = await async_client.post(
            "/auth/refresh", json={"refresh_token": "x", "grant_type": "client_credentials"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "unsupported_grant_type"

    async def test_unknown_refresh_token(self, async_client):
        response = await async_client.post(
            "/auth/refresh", json={"refresh_token": "f" * 64, "grant_type": "refresh_token"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "invalid_grant"


class TestRevokeEndpoint:
    async def test_revoke_access_token(self, async_client, client_factory):
        await client_factory()
        tokens = await issue(async_client)
        headers = {"Authorization": f"Bearer {tokens['access_token']}"}

        response = await async_client.post("/auth/revoke", json={"token": tokens["access_token"]})

        assert response.status_code == 200
        assert response.json() == {"message": "Token revoked successfully"}
        protected = await async_client.get("/proxy/open_feed/latest", headers=headers)
        assert protected.status_code == 401

    async def test_revoke_refresh_token_blocks_refresh(self, async_client, client_factory):
        await client_factory()
        tokens = await issue(async_client)

        await async_client.post("/auth/revoke", json={"token": tokens["refresh_token"]})
        response = await async_client.post(
            "/auth/refresh",
            json={"refresh_token": tokens["refresh_token"], "grant_type": "refresh_token"},
        )
        assert response.status_code == 401

    async def test_revoke_unknown_token_succeeds(self, async_client):
        response = await async_client.post("/auth/revoke", json={"token": "never-issued"})
        assert response.status_code == 200
        assert response.json() == {"message": "Token revoked successfully"}

    async def test_revoke_missing_token(self, async_client):
        response = await async_client.post("/auth/revoke", json={})
        assert response.status_code == 400
        assert response.json() == {
            "error": "invalid_request",
            "error_description": "Missing required parameter: token",
        }


async def test_full_client_credentials_flow(async_client, client_factory, upstream):
    """Issue, call a protected route, revoke, and see the token rejected."""
    await client_factory()
    tokens = await issue(async_client)
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}

    assert (await async_client.get("/proxy/open_feed/latest", headers=headers)).status_code == 200
    assert len(upstream.requests) == 1

    await async_client.post("/auth/revoke", json={"token": tokens["access_token"]})

    response = await async_client.get("/proxy/open_feed/latest", headers=headers)
    assert response.status_code == 401
    assert response.json()["error"] == "unauthorized"
    assert len(upstream.requests) == 1

"""
Tests for user profile endpoints.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.unit
class TestUserEndpoints:
    """Test user endpoints."""

    async def test_get_current_user_unauthorized(self, forum_app, client: AsyncClient) -> None:
        """Test getting current user without auth returns 401."""
        response = await client.get("/api/v1/users/me")

        assert response.status_code == 401
        assert response.json()["code"] == "not_authenticated"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_invalid_token(self, forum_app, client: AsyncClient) -> None:
        response = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer nonsense"})

        assert response.status_code == 401
        assert response.json()["code"] == "invalid_token"

    async def test_profile_includes_karma(self, forum_app, client: AsyncClient, make_user, auth_headers) -> None:
        user = make_user("ivy", karma=7)

        response = await client.get("/api/v1/users/me", headers=auth_headers(user))

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == user.id
        assert body["karma"] == 7
        assert "hashed_password" not in body

    async def test_my_communities(
        self, forum_app, client: AsyncClient, make_user, make_community, auth_headers
    ) -> None:
        owner = make_user("owner")
        user = make_user("jack")
        joined = make_community(owner, members=(user,))
        make_community(owner)

        response = await client.get("/api/v1/users/me/communities", headers=auth_headers(user))

        assert response.status_code == 200
        assert [c["id"] for c in response.json()] == [joined.id]

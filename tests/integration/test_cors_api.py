"""
Integration tests for cross-origin requests and OPTIONS handling.
"""

import pytest
from httpx import AsyncClient

ORIGIN = "http://app.example"


class TestPreflight:
    """OPTIONS always ends in an empty 204."""

    @pytest.mark.asyncio
    async def test_allowed_preflight(self, client: AsyncClient):
        response = await client.options(
            "/things",
            headers={
                "Origin": ORIGIN,
                "Access-Control-Request-Method": "PUT",
                "Access-Control-Request-Headers": "Authorization, Link",
            },
        )

        assert response.status_code == 204
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert "PUT" in response.headers["access-control-allow-methods"]

    @pytest.mark.asyncio
    async def test_disallowed_preflight_still_succeeds(self, client: AsyncClient):
        response = await client.options(
            "/things",
            headers={
                "Origin": ORIGIN,
                "Access-Control-Request-Method": "PATCH",
                "Access-Control-Request-Headers": "X-Foo",
            },
        )

        assert response.status_code == 204
        assert response.content == b""
        assert "content-type" not in response.headers

    @pytest.mark.asyncio
    async def test_plain_options(self, client: AsyncClient):
        response = await client.options("/things/anything")

        assert response.status_code == 204
        assert response.content == b""


class TestCrossOriginRequests:

    @pytest.mark.asyncio
    async def test_link_and_location_are_exposed(self, client: AsyncClient):
        response = await client.get("/.well-known/health", headers={"Origin": ORIGIN})

        assert response.headers["access-control-allow-origin"] == "*"
        exposed = response.headers["access-control-expose-headers"].lower()
        assert "link" in exposed
        assert "location" in exposed

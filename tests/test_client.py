"""Tests for the Postman API client."""

import httpx
import pytest

from postman_mcp.clients.postman import PostmanAPIClient, PostmanAPIError


def _client(handler):
    return PostmanAPIClient("PMAK-secret", "https://api.postman.com/", transport=httpx.MockTransport(handler))


class TestPostmanAPIClient:
    @pytest.mark.asyncio
    async def test_request_headers_and_params(self):
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(200, json={"workspaces": []})

        client = _client(handler)
        data = await client.request("GET", "/workspaces", params={"type": "team", "createdBy": None})
        await client.aclose()

        request = seen["request"]
        assert data == {"workspaces": []}
        assert request.url.path == "/workspaces"
        assert dict(request.url.params) == {"type": "team"}
        assert request.headers["x-api-key"] == "PMAK-secret"
        assert request.headers["user-agent"] == "postman-mcp-server/0.1.0"

    @pytest.mark.asyncio
    async def test_forwarded_user_agent_is_prefixed(self):
        seen = {}

        def handler(request):
            seen["agent"] = request.headers["user-agent"]
            return httpx.Response(200, json={})

        client = _client(handler)
        await client.request("GET", "/me", headers={"user-agent": "Claude"})
        await client.aclose()
        assert seen["agent"] == "Claude/postman-mcp-server/0.1.0"

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        def handler(request):
            return httpx.Response(404, json={"error": {"name": "instanceNotFoundError", "message": "Not found"}})

        client = _client(handler)
        with pytest.raises(PostmanAPIError) as exc_info:
            await client.request("GET", "/collections/nope")
        await client.aclose()
        assert exc_info.value.status_code == 404
        assert str(exc_info.value) == "404 Not found"

    @pytest.mark.asyncio
    async def test_empty_body(self):
        client = _client(lambda request: httpx.Response(204))
        assert await client.request("DELETE", "/collections/c1") == {}
        await client.aclose()

    def test_repr_hides_key(self):
        client = PostmanAPIClient("PMAK-secret-abcd", "https://api.postman.com")
        assert "secret" not in repr(client)
        assert "abcd" in repr(client)

"""Tests for the tool registry and the Postman tool handlers."""

import json

import httpx
import pytest
from pydantic import BaseModel, ValidationError

from postman_mcp.clients.postman import PostmanAPIClient
from postman_mcp.tools import ALL_TOOLS, ENABLED_RESOURCES, load_tools
from postman_mcp.tools.registry import (
    ToolAnnotations,
    ToolContext,
    ToolDescriptor,
    ToolRegistry,
    ToolRegistryError,
)


class Params(BaseModel):
    pass


async def _noop(args, ctx):
    return {}


class TestRegistryLoad:
    def test_minimal_tier(self):
        registry = load_tools("minimal")
        assert registry.tier == "minimal"
        assert registry.names == list(ENABLED_RESOURCES["minimal"])
        assert "deleteCollection" not in registry

    def test_full_tier(self):
        registry = load_tools("full")
        assert len(registry) == len(ENABLED_RESOURCES["full"])
        assert "createEnvironment" in registry

    def test_catalog_names_unique(self):
        names = [t.name for t in ALL_TOOLS]
        assert len(names) == len(set(names))

    def test_unknown_tier(self):
        with pytest.raises(ToolRegistryError, match="Unknown tool tier"):
            load_tools("everything")

    def test_duplicate_name_fails_whole_load(self):
        tool = ToolDescriptor(name="a", description="A.", parameters=Params, handler=_noop)
        with pytest.raises(ToolRegistryError, match="Duplicate"):
            ToolRegistry.load("t", [tool, tool], {"t": ["a"]})

    @pytest.mark.parametrize("bad", [
        {"name": "a", "description": "A."},
        ToolDescriptor(name="", description="A.", parameters=Params, handler=_noop),
        ToolDescriptor(name="a", description=" ", parameters=Params, handler=_noop),
        ToolDescriptor(name="a", description="A.", parameters=dict, handler=_noop),
        ToolDescriptor(name="a", description="A.", parameters=Params, handler=None),
    ])
    def test_malformed_descriptor(self, bad):
        good = ToolDescriptor(name="b", description="B.", parameters=Params, handler=_noop)
        with pytest.raises(ToolRegistryError):
            ToolRegistry.load("t", [good, bad], {"t": ["b"]})

    def test_tier_naming_missing_tool(self):
        good = ToolDescriptor(name="b", description="B.", parameters=Params, handler=_noop)
        with pytest.raises(ToolRegistryError, match="unknown tools"):
            ToolRegistry.load("t", [good], {"t": ["b", "c"]})


class TestDescriptors:
    def test_to_mcp(self):
        entry = load_tools("full").get("deleteCollection").to_mcp()
        assert entry["name"] == "deleteCollection"
        assert entry["inputSchema"]["type"] == "object"
        assert entry["inputSchema"]["required"] == ["collectionId"]
        assert entry["annotations"]["destructiveHint"] is True

    def test_annotations_drop_unset_hints(self):
        assert ToolAnnotations(read_only=True).to_mcp() == {"readOnlyHint": True}

    def test_parse_arguments_validates(self):
        tool = load_tools("minimal").get("getWorkspace")
        with pytest.raises(ValidationError):
            tool.parse_arguments({})
        assert tool.parse_arguments({"workspaceId": "w1"}).workspaceId == "w1"

    def test_parse_arguments_accepts_none(self):
        tool = load_tools("minimal").get("getAuthenticatedUser")
        tool.parse_arguments(None)


class TestHandlers:
    @pytest.fixture
    def ctx(self, fake_client_cls):
        client = fake_client_cls("PMAK-1", "https://api.postman.com")
        return ToolContext(client=client, headers={"user-agent": "Claude"})

    async def _call(self, name, arguments, ctx):
        tool = load_tools("full").get(name)
        result = await tool.handler(tool.parse_arguments(arguments), ctx)
        assert result["content"][0]["type"] == "text"
        json.loads(result["content"][0]["text"])
        return ctx.client.calls[-1]

    @pytest.mark.asyncio
    async def test_get_authenticated_user(self, ctx):
        call = await self._call("getAuthenticatedUser", {}, ctx)
        assert (call["method"], call["path"]) == ("GET", "/me")
        assert call["headers"] == {"user-agent": "Claude"}

    @pytest.mark.asyncio
    async def test_get_workspaces_filters(self, ctx):
        call = await self._call("getWorkspaces", {"type": "team"}, ctx)
        assert call["path"] == "/workspaces"
        assert call["params"] == {"type": "team"}

    @pytest.mark.asyncio
    async def test_get_collection_keeps_id_out_of_query(self, ctx):
        call = await self._call("getCollection", {"collectionId": "c1", "model": "minimal"}, ctx)
        assert call["path"] == "/collections/c1"
        assert call["params"] == {"model": "minimal"}

    @pytest.mark.asyncio
    async def test_delete_collection(self, ctx):
        call = await self._call("deleteCollection", {"collectionId": "c1"}, ctx)
        assert (call["method"], call["path"]) == ("DELETE", "/collections/c1")

    @pytest.mark.asyncio
    async def test_create_workspace(self, ctx):
        call = await self._call("createWorkspace", {"workspace": {"name": "API", "type": "team"}}, ctx)
        assert call["method"] == "POST"
        assert call["json"] == {"workspace": {"name": "API", "type": "team"}}

    @pytest.mark.asyncio
    async def test_create_environment(self, ctx):
        call = await self._call("createEnvironment", {
            "workspace": "w1",
            "environment": {"name": "dev", "values": [{"key": "host", "value": "localhost"}]},
        }, ctx)
        assert call["path"] == "/environments"
        assert call["params"] == {"workspace": "w1"}
        assert call["json"]["environment"]["values"][0] == {
            "key": "host", "value": "localhost", "type": "default", "enabled": True,
        }

    @pytest.mark.asyncio
    async def test_ids_stay_one_path_segment(self, ctx):
        call = await self._call("deleteCollection", {"collectionId": "../workspaces/ws-1"}, ctx)
        assert (call["method"], call["path"]) == ("DELETE", "/collections/..%2Fworkspaces%2Fws-1")
        call = await self._call("getEnvironment", {"environmentId": "e1?x=1#f"}, ctx)
        assert call["path"] == "/environments/e1%3Fx%3D1%23f"

    @pytest.mark.parametrize("bad", ["", ".", ".."])
    def test_dot_ids_rejected(self, bad):
        tool = load_tools("full").get("deleteCollection")
        with pytest.raises(ValidationError):
            tool.parse_arguments({"collectionId": bad})


class TestPathsOnTheWire:
    @pytest.mark.asyncio
    async def test_traversal_id_does_not_leave_collections(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={})

        client = PostmanAPIClient("PMAK-1", "https://api.postman.com", transport=httpx.MockTransport(handler))
        tool = load_tools("full").get("deleteCollection")
        args = tool.parse_arguments({"collectionId": "../workspaces/ws-1"})
        await tool.handler(args, ToolContext(client=client, headers={}))
        await client.aclose()

        assert seen[0].method == "DELETE"
        assert seen[0].url.raw_path == b"/collections/..%2Fworkspaces%2Fws-1"

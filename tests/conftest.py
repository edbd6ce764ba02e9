"""Shared fixtures for Postman MCP tests."""

import asyncio

import pytest

from postman_mcp.server.dispatch import DispatchContext
from postman_mcp.server.transport import IncomingMessage, Transport


class FakeClient:
    """Stands in for PostmanAPIClient; records every request."""

    def __init__(self, api_key, base_url):
        self.api_key = api_key
        self.base_url = base_url
        self.calls = []

    async def request(self, method, path, *, params=None, json=None, headers=None):
        self.calls.append({
            "method": method,
            "path": path,
            "params": params,
            "json": json,
            "headers": dict(headers or {}),
        })
        return {"method": method, "path": path, "apiKey": self.api_key}


class MemoryTransport(Transport):
    """In-process transport: tests push inbound messages and pop outbound ones."""

    def __init__(self, session_id=None):
        super().__init__()
        self.session_id = session_id
        self.inbound = asyncio.Queue()
        self.outbound = asyncio.Queue()

    def push(self, message, headers=None):
        self._notify_message(message)
        self.inbound.put_nowait(IncomingMessage(message, headers))

    def eof(self):
        self.inbound.put_nowait(None)

    async def next_sent(self, timeout=2.0):
        return await asyncio.wait_for(self.outbound.get(), timeout)

    async def read_message(self):
        if self.closed:
            return None
        return await self.inbound.get()

    async def write_message(self, message):
        if self.closed:
            raise RuntimeError("Not connected")
        self.outbound.put_nowait(message)

    async def close(self):
        if self.closed:
            return
        await super().close()
        self.inbound.put_nowait(None)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Keep the developer's environment and env files out of every test."""
    for var in (
        "POSTMAN_API_KEY", "POSTMAN_API_REGION", "POSTMAN_API_BASE_URL", "HOST", "PORT",
        "MCP_SSE_PATH", "MCP_MESSAGES_PATH", "MCP_ALLOWED_HOSTS", "MCP_ALLOWED_ORIGINS",
        "MCP_ENABLE_DNS_PROTECTION",
    ):
        # setenv first so teardown also removes values an env file loaded
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    monkeypatch.chdir(tmp_path)

    from postman_mcp import config
    monkeypatch.setattr(config.Config, "HOME_DIR", tmp_path / ".postman-mcp")


@pytest.fixture
def tmp_home(tmp_path):
    from postman_mcp.config import Config
    return Config.HOME_DIR


@pytest.fixture
def context():
    return DispatchContext("https://api.postman.com", client_factory=FakeClient)


@pytest.fixture
def default_context():
    return DispatchContext("https://api.postman.com", default_api_key="PMAK-default", client_factory=FakeClient)


@pytest.fixture
def fake_client_cls():
    return FakeClient


@pytest.fixture
def memory_transport_cls():
    return MemoryTransport

"""
Postman API client — one instance per API key

The HTTP connection pool is created on first request and reused for the
lifetime of the instance.
"""

from typing import Any, Dict, Mapping, Optional

import httpx

from postman_mcp.config import Config
from postman_mcp.server.logger import get_logger

log = get_logger("clients.postman")


class PostmanAPIError(Exception):
    """Non-2xx response from the Postman API."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(f"{status_code} {message}")


def _first(value):
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


class PostmanAPIClient:
    """Thin async wrapper over the Postman REST API."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else Config.REQUEST_TIMEOUT
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    def _build_headers(self, forwarded: Optional[Mapping[str, Any]]) -> Dict[str, str]:
        headers = {
            "x-api-key": self.api_key,
            "accept": "application/json",
            "user-agent": Config.USER_AGENT,
        }
        if forwarded:
            agent = _first(forwarded.get("user-agent"))
            if agent:
                headers["user-agent"] = f"{agent}/{Config.USER_AGENT}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body."""
        client = self._ensure_client()
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        response = await client.request(
            method,
            path,
            params=params or None,
            json=json,
            headers=self._build_headers(headers),
        )

        if response.status_code >= 400:
            raise PostmanAPIError(response.status_code, _error_message(response))

        if not response.content:
            return {}
        return response.json()

    async def aclose(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def __repr__(self) -> str:
        return f"PostmanAPIClient(base_url={self.base_url!r}, api_key=***{self.api_key[-4:]})"


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message") or error.get("name") or response.reason_phrase
    if isinstance(error, str):
        return error
    return response.reason_phrase

"""
Credential resolution and per-key client cache

Precedence (first match wins):
  1. direct API-key headers, in DIRECT_KEY_HEADERS order
  2. Authorization: Bearer <key>
  3. the process-wide default client (handled by the dispatcher)
"""

from typing import Any, Callable, Dict, Mapping, Optional

from postman_mcp.clients.postman import PostmanAPIClient
from postman_mcp.server.logger import get_logger
from postman_mcp.server.protocol import ProtocolError, INVALID_PARAMS

log = get_logger("credentials")

DIRECT_KEY_HEADERS = ("x-postman-api-key", "postman-api-key", "postman_api_key", "x-api-key")

HeaderBag = Mapping[str, Any]


def _normalize_headers(headers: HeaderBag) -> Dict[str, str]:
    normalized: Dict[str, str] = {}
    for key, raw_value in headers.items():
        if raw_value is None:
            continue
        value = raw_value[0] if isinstance(raw_value, (list, tuple)) and raw_value else raw_value
        if not isinstance(value, str):
            continue
        normalized[key.lower()] = value.strip()
    return normalized


def extract_api_key(headers: Optional[HeaderBag]) -> Optional[str]:
    """Return the API key carried by a header bag, or None."""
    if not headers:
        return None

    normalized = _normalize_headers(headers)

    for key in DIRECT_KEY_HEADERS:
        candidate = normalized.get(key)
        if candidate:
            return candidate

    auth = normalized.get("authorization")
    if auth and auth.lower().startswith("bearer "):
        return auth[len("bearer "):].strip() or None

    return None


class ClientCache:
    """One backend client per distinct API key, for the process lifetime.

    get_or_create() never awaits between lookup and insert, so concurrent
    coroutines asking for the same key always share one instance.
    """

    def __init__(
        self,
        base_url: str,
        factory: Callable[[str, str], Any] = PostmanAPIClient,
    ):
        self.base_url = base_url
        self._factory = factory
        self._clients: Dict[str, Any] = {}

    def get_or_create(self, api_key: str):
        key = (api_key or "").strip()
        if not key:
            raise ProtocolError(
                INVALID_PARAMS,
                "POSTMAN_API_KEY is required via environment variable or request header",
            )

        cached = self._clients.get(key)
        if cached is not None:
            return cached

        client = self._factory(key, self.base_url)
        self._clients[key] = client
        log.debug(f"Created backend client #{len(self._clients)}")
        return client

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, api_key: str) -> bool:
        return (api_key or "").strip() in self._clients

    async def aclose(self):
        """Release every client's connection pool (process shutdown only)."""
        for client in list(self._clients.values()):
            close = getattr(client, "aclose", None)
            if close is None:
                continue
            try:
                await close()
            except Exception as exc:
                log.warning(f"Error closing backend client: {exc}")

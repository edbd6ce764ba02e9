"""
Dispatch Pipeline — credential- and session-aware tool invocation

Per tools/call:
  1. log start
  2. resolve API key (headers > default client) -> cached backend client
  3. resolve session id -> remembered clientInfo (stdio entry as fallback)
  4. copy headers, overwrite user-agent with the client's name
  5. run the handler with {client, headers}
  6. log completion + duration, return the result untouched
  7. on failure: log locally and to the session; ProtocolError passes
     through, anything else becomes INTERNAL_ERROR

DispatchContext holds all process-wide mutable state (client cache, session
registry, SSE transport map). Everything runs on one event loop; none of
these maps is touched across an await.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from pydantic import BaseModel

from postman_mcp.clients.postman import PostmanAPIClient
from postman_mcp.server.credentials import ClientCache, extract_api_key
from postman_mcp.server.logger import get_logger, log_both
from postman_mcp.server.protocol import ProtocolError, INVALID_PARAMS, INTERNAL_ERROR
from postman_mcp.server.sessions import SessionRegistry, STDIO_SESSION_ID
from postman_mcp.tools.registry import ToolContext, ToolDescriptor

log = get_logger("dispatch")

SESSION_ID_HEADER = "mcp-session-id"


@dataclass
class RequestContext:
    """Where an invocation came from."""

    session_id: Optional[str] = None
    headers: Optional[Mapping[str, Any]] = None
    session: Any = None


class DispatchContext:
    """Process-wide state shared by the transports and the dispatcher."""

    def __init__(
        self,
        base_url: str,
        default_api_key: Optional[str] = None,
        client_factory: Callable[[str, str], Any] = PostmanAPIClient,
    ):
        self.clients = ClientCache(base_url, client_factory)
        self.sessions = SessionRegistry()
        self.transports: Dict[str, Any] = {}
        self.default_client = self.clients.get_or_create(default_api_key) if default_api_key else None

    async def aclose(self):
        for transport in list(self.transports.values()):
            await transport.close()
        await self.clients.aclose()


def resolve_session_id(request: RequestContext) -> str:
    """Explicit session id, else the mcp-session-id header, else stdio."""
    if isinstance(request.session_id, str) and request.session_id:
        return request.session_id

    for key, value in (request.headers or {}).items():
        if key.lower() != SESSION_ID_HEADER:
            continue
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        if isinstance(value, str) and value:
            return value

    return STDIO_SESSION_ID


def forward_headers(
    headers: Optional[Mapping[str, Any]],
    peer_info: Optional[Dict[str, Any]],
) -> Dict[str, Any]:
    """Copy incoming headers; the peer's name replaces any user-agent."""
    forwarded = dict(headers or {})
    name = (peer_info or {}).get("name")
    if name:
        for key in [k for k in forwarded if k.lower() == "user-agent"]:
            del forwarded[key]
        forwarded["user-agent"] = name
    return forwarded


class ToolDispatcher:
    def __init__(self, context: DispatchContext):
        self.context = context

    def resolve_client(self, headers: Optional[Mapping[str, Any]]):
        header_key = extract_api_key(headers)
        client = self.context.clients.get_or_create(header_key) if header_key else self.context.default_client
        if client is None:
            raise ProtocolError(
                INVALID_PARAMS,
                "POSTMAN_API_KEY must be provided via environment variable or x-postman-api-key header.",
            )
        return client

    async def invoke(
        self,
        tool: ToolDescriptor,
        arguments: BaseModel,
        request: RequestContext,
    ) -> Dict[str, Any]:
        name = tool.name
        # start event stays local to keep client logs quiet
        log.info(f"Tool invocation started: {name}")
        start = time.monotonic()

        try:
            client = self.resolve_client(request.headers)

            session_id = resolve_session_id(request)
            peer_info = self.context.sessions.lookup_with_fallback(session_id)
            forwarded = forward_headers(request.headers, peer_info)

            result = await tool.handler(arguments, ToolContext(client=client, headers=forwarded))

            duration_ms = int((time.monotonic() - start) * 1000)
            log.info(f"Tool invocation completed: {name} ({duration_ms}ms)")
            return result

        except Exception as exc:
            duration_ms = int((time.monotonic() - start) * 1000)
            message = exc.message if isinstance(exc, ProtocolError) else str(exc)
            await log_both(
                log, request.session, "error",
                f"Tool invocation failed: {name}: {message} ({duration_ms}ms)",
            )
            if isinstance(exc, ProtocolError):
                raise
            raise ProtocolError(INTERNAL_ERROR, f"API error: {message}") from exc

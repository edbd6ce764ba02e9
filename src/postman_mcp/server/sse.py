"""
HTTP+SSE transport — one instance per connected session

GET  <sse-path>                     -> events(): `endpoint` event, then `message` events
POST <messages-path>?sessionId=<id> -> handle_post_message(): 202 Accepted

Outbound messages are queued and streamed by events(); inbound messages are
queued with the POST request's headers and read by the server session.
"""

import asyncio
import json
import time
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import quote

from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response, StreamingResponse

from postman_mcp.server.logger import get_logger
from postman_mcp.server.transport import IncomingMessage, Transport, MAX_MESSAGE_BYTES

log = get_logger("sse")

HEARTBEAT_INTERVAL = 15.0


@dataclass
class HostSecurity:
    """DNS-rebinding protection: Host / Origin allow-lists."""

    allowed_hosts: Optional[List[str]] = None
    allowed_origins: Optional[List[str]] = None

    def check(self, headers: Mapping[str, str]) -> Optional[str]:
        """Return an error message when the request must be rejected."""
        if self.allowed_hosts:
            host = headers.get("host")
            if not host or host not in self.allowed_hosts:
                return f"Invalid Host header: {host}"
        if self.allowed_origins:
            origin = headers.get("origin")
            if origin and origin not in self.allowed_origins:
                return f"Invalid Origin header: {origin}"
        return None


def format_sse(event: str, data: str) -> str:
    lines = "".join(f"data: {line}\n" for line in data.split("\n"))
    return f"event: {event}\n{lines}\n"


def header_bag(headers) -> Dict[str, Union[str, List[str]]]:
    """Flatten starlette Headers; repeated headers become lists."""
    bag: Dict[str, Union[str, List[str]]] = {}
    for key, value in headers.items():
        values = headers.getlist(key)
        bag[key] = values[0] if len(values) == 1 else list(values)
    return bag


class SseTransport(Transport):
    """Server side of one SSE session."""

    def __init__(
        self,
        endpoint: str,
        security: Optional[HostSecurity] = None,
        heartbeat_interval: float = HEARTBEAT_INTERVAL,
    ):
        super().__init__()
        self.session_id = str(uuid.uuid4())
        self.endpoint = endpoint
        self.security = security
        self.heartbeat_interval = heartbeat_interval
        self._outgoing: asyncio.Queue = asyncio.Queue()
        self._incoming: asyncio.Queue = asyncio.Queue()
        self._started = False

    @property
    def endpoint_url(self) -> str:
        sep = "&" if "?" in self.endpoint else "?"
        return f"{self.endpoint}{sep}sessionId={quote(self.session_id)}"

    # -- outbound (SSE stream) --

    async def events(self) -> AsyncIterator[str]:
        """Yield SSE frames until the transport closes or the client goes away."""
        if self._started:
            raise RuntimeError("SSE stream already started")
        self._started = True

        yield format_sse("endpoint", self.endpoint_url)
        last_sent = time.monotonic()

        try:
            while not self.closed:
                try:
                    message = await asyncio.wait_for(self._outgoing.get(), timeout=1.0)
                except asyncio.TimeoutError:
                    if time.monotonic() - last_sent >= self.heartbeat_interval:
                        yield ": ping\n\n"
                        last_sent = time.monotonic()
                    continue

                if message is None:
                    break

                yield format_sse("message", json.dumps(message, ensure_ascii=False))
                last_sent = time.monotonic()
        finally:
            await self.close()

    def response(self) -> StreamingResponse:
        return StreamingResponse(
            self.events(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering
            },
        )

    async def write_message(self, message: Dict[str, Any]):
        if self.closed:
            raise RuntimeError("Not connected")
        self._outgoing.put_nowait(message)

    # -- inbound (POST endpoint) --

    async def handle_post_message(self, request: Request) -> Response:
        if not self._started or self.closed:
            return PlainTextResponse("SSE connection not established", status_code=500)

        if self.security is not None:
            error = self.security.check(request.headers)
            if error:
                log.warning(f"Rejected message for session={self.session_id}: {error}")
                return PlainTextResponse(error, status_code=403)

        content_type = request.headers.get("content-type", "")
        if "application/json" not in content_type.lower():
            return PlainTextResponse(f"Unsupported content-type: {content_type}", status_code=400)

        body = await request.body()
        if len(body) > MAX_MESSAGE_BYTES:
            return PlainTextResponse("Message too large", status_code=413)

        try:
            message = json.loads(body)
        except ValueError as exc:
            self._notify_error(exc)
            return PlainTextResponse(f"Invalid message: {exc}", status_code=400)

        if not isinstance(message, dict):
            error = ValueError("Message must be a JSON object")
            self._notify_error(error)
            return PlainTextResponse(f"Invalid message: {error}", status_code=400)

        self._notify_message(message)
        self._incoming.put_nowait(IncomingMessage(message, header_bag(request.headers)))
        return PlainTextResponse("Accepted", status_code=202)

    async def read_message(self) -> Optional[IncomingMessage]:
        if self.closed:
            return None
        item = await self._incoming.get()
        return item

    async def close(self):
        if self.closed:
            return
        await super().close()
        self._outgoing.put_nowait(None)
        self._incoming.put_nowait(None)
        log.debug(f"SSE transport closed session={self.session_id}")

"""
MCP Server — Main Orchestrator

Ties together:
  Transport -> Protocol -> Router -> Dispatch Pipeline -> Postman client

Flow:
  1. A transport yields one parsed JSON-RPC message (stdio line or SSE POST)
  2. Protocol validates JSON-RPC 2.0
  3. Router dispatches to the correct handler; tools/call goes through the
     dispatch pipeline (credential + session resolution)
  4. The response is written back on the same transport

Each connected transport gets a ServerSession. Messages are taken in arrival
order, and every request runs as its own task so a slow tool call does not
hold up ping or other calls on the same session.
"""

import asyncio
import signal
from typing import Any, Dict, Optional, Set

from postman_mcp.config import Config, ServerSettings
from postman_mcp.server.dispatch import DispatchContext, RequestContext, ToolDispatcher
from postman_mcp.server.logger import get_logger, log_both
from postman_mcp.server.protocol import (
    validate_message,
    make_response,
    make_error,
    is_initialize_request,
    logging_message,
    ProtocolError,
    LOG_LEVELS,
    INTERNAL_ERROR,
)
from postman_mcp.server.router import Router
from postman_mcp.server.sessions import STDIO_SESSION_ID
from postman_mcp.server.transport import IncomingMessage, StdioTransport, Transport
from postman_mcp.tools.registry import ToolRegistry

log = get_logger("server")


def _is_request_id(value) -> bool:
    return isinstance(value, (str, int))


class ServerSession:
    """One transport's message loop plus its in-flight requests."""

    def __init__(self, server: "MCPServer", transport: Transport, session_id: Optional[str] = None):
        self.server = server
        self.transport = transport
        self.session_id = session_id
        self.log_level: Optional[str] = None
        self._in_flight: Dict[Any, asyncio.Task] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._runner: Optional[asyncio.Task] = None

    def start(self) -> asyncio.Task:
        self._runner = asyncio.create_task(self.run())
        return self._runner

    async def run(self):
        """Read messages until the transport reports EOF / closure."""
        try:
            while True:
                incoming = await self.transport.read_message()
                if incoming is None:
                    break
                self._dispatch(incoming)
            # EOF (not closure): let requests already read finish first
            if self._tasks and not self.transport.closed:
                await asyncio.wait(set(self._tasks))
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            await log_both(log, self, "error", f"MCP server error: {exc}")
        finally:
            await self.close()

    def _dispatch(self, incoming: IncomingMessage):
        msg = incoming.message
        if isinstance(msg, dict) and msg.get("method") == "notifications/cancelled":
            params = msg.get("params")
            if isinstance(params, dict):
                self._cancel(params.get("requestId"))
            return

        task = asyncio.create_task(self._handle_message(msg, incoming.headers))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        if isinstance(msg, dict) and "method" in msg and _is_request_id(msg.get("id")):
            self._in_flight[msg["id"]] = task

    def _cancel(self, request_id):
        if not _is_request_id(request_id):
            return
        task = self._in_flight.pop(request_id, None)
        if task is not None and not task.done():
            log.info(f"Cancelling request {request_id} session={self.session_id or STDIO_SESSION_ID}")
            task.cancel()

    async def _handle_message(self, msg: Any, headers):
        """Process a single JSON-RPC message through the full pipeline."""
        request_id = msg.get("id") if isinstance(msg, dict) else None

        try:
            msg_type = validate_message(msg)
            if msg_type in ("response", "error"):
                # we never send requests to the client
                return

            request = RequestContext(session_id=self.session_id, headers=headers, session=self)
            result = await self.server.router.route(msg, request)

            if msg_type == "notification":
                return
            await self._send(make_response(request_id, result if result is not None else {}))

        except asyncio.CancelledError:
            # cancelled requests get no response
            log.debug(f"Request {request_id} cancelled")

        except ProtocolError as exc:
            log.warning(f"Protocol error: {exc.message} (code={exc.code})")
            if request_id is not None:
                await self._send(make_error(request_id, exc.code, exc.message, exc.data))

        except Exception as exc:
            await log_both(log, self, "error", f"MCP server error: {exc}")
            if request_id is not None:
                await self._send(make_error(request_id, INTERNAL_ERROR, str(exc)))

        finally:
            if _is_request_id(request_id) and self._in_flight.get(request_id) is asyncio.current_task():
                del self._in_flight[request_id]

    async def _send(self, message: Dict[str, Any]):
        try:
            await self.transport.write_message(message)
        except Exception as exc:
            log.warning(f"Dropped message for closed session={self.session_id}: {exc}")

    async def send_log_message(self, level: str, data: Any, logger_name: Optional[str] = None):
        """Send notifications/message unless below the session's setLevel."""
        if self.transport.closed:
            return
        if self.log_level and level in LOG_LEVELS:
            if LOG_LEVELS.index(level) < LOG_LEVELS.index(self.log_level):
                return
        await self.transport.write_message(logging_message(level, data, logger_name))

    async def wait_closed(self):
        if self._runner is not None:
            await asyncio.wait({self._runner})

    async def close(self):
        """Cancel in-flight requests (not awaited) and close the transport."""
        for task in list(self._tasks):
            task.cancel()
        self._in_flight.clear()
        await self.transport.close()
        self.server._sessions.discard(self)
        if self._runner is not None and self._runner is not asyncio.current_task():
            self._runner.cancel()


class MCPServer:
    """
    Main server orchestrator.

    Usage:
        context = DispatchContext(settings.base_url, settings.api_key)
        server = MCPServer(settings, load_tools(settings.tier), context)
        await server.run_stdio()          # or serve create_app(server) over HTTP
    """

    def __init__(self, settings: ServerSettings, tools: ToolRegistry, context: DispatchContext):
        self.settings = settings
        self.tools = tools
        self.context = context
        self.router = Router(tools, ToolDispatcher(context))
        self._sessions: Set[ServerSession] = set()
        self._primary: Optional[ServerSession] = None
        self._closed = False

    @property
    def sessions(self) -> Set[ServerSession]:
        return set(self._sessions)

    def connect(self, transport: Transport, session_id: Optional[str] = None) -> ServerSession:
        """Start serving a transport. Returns its session."""
        session = ServerSession(self, transport, session_id)
        self._sessions.add(session)
        session.start()
        return session

    def _record_stdio_handshake(self, message: Dict[str, Any]):
        if is_initialize_request(message):
            self.context.sessions.record_handshake(STDIO_SESSION_ID, message["params"]["clientInfo"])

    # -- stdio mode --

    async def run_stdio(self, transport: Optional[StdioTransport] = None):
        """Serve the single stdio session until EOF or signal."""
        log.info("Starting stdio transport")
        transport = transport or StdioTransport()
        transport.on_message = self._record_stdio_handshake
        await transport.start()

        session = self.connect(transport)
        self._primary = session

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, lambda s=sig: asyncio.create_task(self._on_signal(s)))
            except (NotImplementedError, RuntimeError):
                pass

        await log_both(
            log, session, "info",
            f"Server connected and ready: {Config.SERVER_NAME}@{Config.SERVER_VERSION} "
            f"with {len(self.tools)} tools ({self.tools.tier})",
        )

        try:
            await session.wait_closed()
            log.info("EOF on stdin; shutting down")
        finally:
            await self.shutdown()

    async def _on_signal(self, sig):
        name = signal.Signals(sig).name
        await log_both(log, self._primary, "warning", f"{name} received; shutting down")
        await self.shutdown()

    async def shutdown(self):
        """Close every session and release backend clients.

        In-flight tool calls are cancelled, not awaited.
        """
        if self._closed:
            return
        self._closed = True

        log.info(f"Shutting down: {len(self._sessions)} live session(s)")
        for session in list(self._sessions):
            await session.close()
        await self.context.aclose()
        log.info("Server stopped")

"""HTTP+SSE (multi-session) application.

Routes:
- /healthz         - server identity, tool tier, transport
- <sse-path>       - GET: open a session, stream responses back as SSE
- <messages-path>  - POST ?sessionId=<id>: deliver one client message
"""

import asyncio
import contextlib
import logging

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from postman_mcp.config import Config
from postman_mcp.server.dispatch import DispatchContext
from postman_mcp.server.logger import get_logger
from postman_mcp.server.protocol import is_initialize_request
from postman_mcp.server.server import MCPServer
from postman_mcp.server.sse import HostSecurity, SseTransport

log = get_logger("http")


def attach_session_hooks(context: DispatchContext, transport: SseTransport):
    """Register a new SSE transport and keep the registries in step with it."""
    session_id = transport.session_id
    context.transports[session_id] = transport

    def on_message(message):
        if is_initialize_request(message):
            context.sessions.record_handshake(session_id, message["params"]["clientInfo"])

    def on_close():
        context.transports.pop(session_id, None)
        context.sessions.forget(session_id)
        log.info(f"SSE session closed session={session_id}")

    def on_error(exc):
        log.error(f"SSE transport error session={session_id}: {exc}")

    transport.on_message = on_message
    transport.on_close = on_close
    transport.on_error = on_error


def create_app(server: MCPServer) -> Starlette:
    """Create the HTTP application around an MCPServer."""
    settings = server.settings
    context = server.context
    security = None
    if settings.dns_protection:
        security = HostSecurity(settings.allowed_hosts, settings.allowed_origins)

    async def health_check(request: Request) -> JSONResponse:
        return JSONResponse({
            "status": "ok",
            "server": Config.SERVER_NAME,
            "version": Config.SERVER_VERSION,
            "tools": server.tools.tier,
            "transport": "sse",
        })

    async def sse_connect(request: Request) -> Response:
        if security is not None:
            error = security.check(request.headers)
            if error:
                log.warning(f"Rejected SSE connection: {error}")
                return PlainTextResponse(error, status_code=403)

        session_id = None
        try:
            transport = SseTransport(settings.messages_path, security)
            session_id = transport.session_id
            attach_session_hooks(context, transport)
            response = transport.response()
            server.connect(transport, session_id)
            log.info(f"SSE session opened session={session_id}")
            return response
        except Exception as exc:
            log.error(f"Failed to establish SSE connection: {exc}", exc_info=True)
            if session_id:
                context.transports.pop(session_id, None)
                context.sessions.forget(session_id)
            return PlainTextResponse("Failed to establish SSE connection", status_code=500)

    async def post_message(request: Request) -> Response:
        values = request.query_params.getlist("sessionId")
        if len(values) != 1 or not values[0]:
            return JSONResponse({"error": "Missing sessionId query parameter"}, status_code=400)
        session_id = values[0]

        transport = context.transports.get(session_id)
        if transport is None:
            return JSONResponse({"error": f"Unknown sessionId: {session_id}"}, status_code=404)

        try:
            return await transport.handle_post_message(request)
        except Exception as exc:
            log.error(f"Failed to handle SSE message session={session_id}: {exc}", exc_info=True)
            return JSONResponse({"error": "Failed to handle message"}, status_code=500)

    @contextlib.asynccontextmanager
    async def lifespan(app):
        log.info(
            f"HTTP SSE transport ready at http://{settings.host}:{settings.port}{settings.sse_path} "
            f"({server.tools.tier}) messages={settings.messages_path} "
            f"dnsProtection={settings.dns_protection}"
        )
        yield
        await server.shutdown()

    routes = [
        Route("/healthz", health_check, methods=["GET"]),
        Route(settings.sse_path, sse_connect, methods=["GET"]),
        Route(settings.messages_path, post_message, methods=["POST"]),
    ]
    return Starlette(routes=routes, lifespan=lifespan)


class _UvicornServer(uvicorn.Server):
    """Closes live SSE streams on SIGINT/SIGTERM so they don't hold up exit."""

    def __init__(self, config: uvicorn.Config, context: DispatchContext):
        super().__init__(config)
        self._context = context
        self._loop = None

    async def serve(self, sockets=None):
        self._loop = asyncio.get_running_loop()
        await super().serve(sockets)

    def handle_exit(self, sig, frame):
        if not self.should_exit:
            log.warning(f"Signal {sig} received; shutting down")
            if self._loop is not None:
                self._loop.call_soon_threadsafe(self._close_transports)
        super().handle_exit(sig, frame)

    def _close_transports(self):
        for transport in list(self._context.transports.values()):
            asyncio.ensure_future(transport.close())


def uvicorn_log_level(level: str) -> str:
    """Map a stdlib level name (WARN, FATAL, ...) to one uvicorn accepts."""
    name = logging.getLevelName(logging.getLevelName(level.upper()))
    if not isinstance(name, str) or name.lower() not in uvicorn.config.LOG_LEVELS:
        return "info"
    return name.lower()


async def serve_http(server: MCPServer):
    """Serve the HTTP+SSE application until a shutdown signal."""
    settings = server.settings
    config = uvicorn.Config(
        create_app(server),
        host=settings.host,
        port=settings.port,
        log_level=uvicorn_log_level(Config.LOG_LEVEL),
        lifespan="on",
    )
    await _UvicornServer(config, server.context).serve()

"""
Method Router — Dispatch MCP methods to handlers

Routes:
  initialize        -> server capabilities handshake
  initialized       -> notification (no response)
  ping              -> pong
  tools/list        -> the active tier's tool definitions
  tools/call        -> argument validation, then the dispatch pipeline
  logging/setLevel  -> per-session minimum level for forwarded logs
"""

from typing import Any, Dict, Optional

from pydantic import ValidationError

from postman_mcp.config import Config
from postman_mcp.server.dispatch import RequestContext, ToolDispatcher
from postman_mcp.server.logger import get_logger
from postman_mcp.server.protocol import (
    initialize_result,
    negotiate_protocol_version,
    tools_list_result,
    ProtocolError,
    LOG_LEVELS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    INVALID_PARAMS,
)
from postman_mcp.tools.registry import ToolRegistry

log = get_logger("router")


class Router:
    """MCP method dispatcher."""

    def __init__(self, tools: ToolRegistry, dispatcher: ToolDispatcher):
        self.tools = tools
        self.dispatcher = dispatcher

    async def route(self, msg: Dict[str, Any], request: RequestContext) -> Optional[Dict[str, Any]]:
        """
        Route a validated message to the appropriate handler.
        Returns the result payload or None for notifications.
        """
        method = msg.get("method", "")
        if not isinstance(method, str):
            raise ProtocolError(INVALID_REQUEST, "method must be a string")
        params = msg.get("params")
        if params is None:
            params = {}
        elif not isinstance(params, dict):
            raise ProtocolError(INVALID_PARAMS, f"params for {method} must be an object")

        if method == "initialize":
            return self._handle_initialize(params)

        if method in ("initialized", "notifications/initialized"):
            return None

        if method == "ping":
            return {}

        if method == "tools/list":
            return tools_list_result(self.tools.list_tools())

        if method == "tools/call":
            return await self._handle_tools_call(params, request)

        if method == "logging/setLevel":
            return self._handle_set_level(params, request)

        if method.startswith("notifications/"):
            return None

        raise ProtocolError(METHOD_NOT_FOUND, f"Method not found: {method}")

    def _handle_initialize(self, params: Dict) -> Dict[str, Any]:
        client_info = params.get("clientInfo")
        if client_info is None:
            client_info = {}
        elif not isinstance(client_info, dict):
            raise ProtocolError(INVALID_PARAMS, "clientInfo must be an object")
        requested = params.get("protocolVersion")
        log.info(f"Client initialize: {client_info.get('name', '?')} protocol={requested or '?'}")
        return initialize_result(
            server_name=Config.SERVER_NAME,
            server_version=Config.SERVER_VERSION,
            protocol_version=negotiate_protocol_version(requested, Config.PROTOCOL_VERSIONS),
        )

    async def _handle_tools_call(self, params: Dict, request: RequestContext) -> Dict[str, Any]:
        name = params.get("name")
        if not name:
            raise ProtocolError(INVALID_PARAMS, "Missing tool name")
        if not isinstance(name, str):
            raise ProtocolError(INVALID_PARAMS, "Tool name must be a string")

        tool = self.tools.get(name)
        if tool is None:
            raise ProtocolError(INVALID_PARAMS, f"Tool {name} not found")

        try:
            arguments = tool.parse_arguments(params.get("arguments"))
        except ValidationError as exc:
            raise ProtocolError(INVALID_PARAMS, f"Invalid arguments for tool {name}: {exc}")

        return await self.dispatcher.invoke(tool, arguments, request)

    def _handle_set_level(self, params: Dict, request: RequestContext) -> Dict[str, Any]:
        level = params.get("level")
        if level not in LOG_LEVELS:
            raise ProtocolError(INVALID_PARAMS, f"Invalid log level: {level}")
        if request.session is not None:
            request.session.log_level = level
        return {}

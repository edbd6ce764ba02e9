"""
Transports — shared hook plumbing and the STDIO (single-session) transport

Reads newline-delimited JSON from stdin, writes to stdout.
NEVER pollutes stdout with logs.

Hooks (set by whoever wires the transport):
  on_message(message)  — every parsed inbound message, before the server sees it
  on_close()           — once, when the transport closes
  on_error(exc)        — transport-level failures (closure is reported separately)
"""

import asyncio
import json
import sys
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from postman_mcp.server.logger import get_logger
from postman_mcp.server.protocol import make_error, PARSE_ERROR

log = get_logger("transport")

# Largest accepted line / request body
MAX_MESSAGE_BYTES = 4 * 1024 * 1024


@dataclass
class IncomingMessage:
    """One parsed client message plus the headers it arrived with (HTTP only)."""

    message: Any
    headers: Optional[Mapping[str, Any]] = None


class Transport:
    """Hook handling shared by the stdio and SSE transports."""

    session_id: Optional[str] = None

    def __init__(self):
        self.on_message: Optional[Callable[[Dict[str, Any]], None]] = None
        self.on_close: Optional[Callable[[], None]] = None
        self.on_error: Optional[Callable[[Exception], None]] = None
        self.closed = False

    def _notify_message(self, message: Any):
        if self.on_message is None:
            return
        try:
            self.on_message(message)
        except Exception as exc:
            log.error(f"on_message hook failed: {exc}", exc_info=True)
            self._notify_error(exc)

    def _notify_error(self, exc: Exception):
        if self.on_error is None:
            return
        try:
            self.on_error(exc)
        except Exception as hook_exc:
            log.error(f"on_error hook failed: {hook_exc}")

    def _notify_close(self):
        if self.on_close is None:
            return
        try:
            self.on_close()
        except Exception as exc:
            log.error(f"on_close hook failed: {exc}", exc_info=True)

    async def read_message(self) -> Optional[IncomingMessage]:
        raise NotImplementedError

    async def write_message(self, message: Dict[str, Any]):
        raise NotImplementedError

    async def close(self):
        if self.closed:
            return
        self.closed = True
        self._notify_close()


class StdioTransport(Transport):
    """Single-session transport over the process's stdin/stdout."""

    def __init__(self, reader: Optional[asyncio.StreamReader] = None, writer=None):
        super().__init__()
        self._reader = reader
        self._stdout = writer

    async def start(self):
        """Initialize async stdin reader and direct stdout writer."""
        if self._reader is None:
            loop = asyncio.get_running_loop()
            self._reader = asyncio.StreamReader(limit=MAX_MESSAGE_BYTES)
            protocol = asyncio.StreamReaderProtocol(self._reader)
            await loop.connect_read_pipe(lambda: protocol, sys.stdin.buffer)

        if self._stdout is None:
            self._stdout = sys.stdout.buffer
        log.info("Stdio transport initialized")

    async def read_message(self) -> Optional[IncomingMessage]:
        """
        Read the next JSON-RPC message from stdin.
        Unparseable lines are answered with a parse error and skipped.
        Returns None on EOF or when the transport is closed.
        """
        if not self._reader:
            raise RuntimeError("Transport not started")

        while not self.closed:
            try:
                raw_bytes = await self._reader.readline()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                log.error(f"Read error: {exc}")
                self._notify_error(exc)
                return None

            if not raw_bytes:
                return None
            if not raw_bytes.strip():
                continue

            try:
                parsed = json.loads(raw_bytes)
            except ValueError as exc:
                log.error(f"JSON parse error: {exc}")
                self._notify_error(exc)
                await self.write_message(make_error(None, PARSE_ERROR, f"Parse error: {exc}"))
                continue

            self._notify_message(parsed)
            return IncomingMessage(parsed)

        return None

    async def write_message(self, message: Dict[str, Any]):
        """Write a JSON-RPC message to stdout."""
        if self._stdout is None:
            raise RuntimeError("Transport not started")

        raw_text = json.dumps(message, separators=(",", ":"), ensure_ascii=False) + "\n"
        self._stdout.write(raw_text.encode("utf-8"))
        self._stdout.flush()

    async def close(self):
        if self.closed:
            return
        await super().close()
        log.info("Stdio transport closed")

"""
Session Registry — handshake metadata per transport session

Bookkeeping only: the remembered clientInfo feeds the forwarded user-agent,
never authorization.
"""

from typing import Any, Dict, Optional

from postman_mcp.server.logger import get_logger

log = get_logger("sessions")

STDIO_SESSION_ID = "stdio"

PeerInfo = Dict[str, Any]


class SessionRegistry:
    def __init__(self):
        self._peers: Dict[str, Optional[PeerInfo]] = {}

    def record_handshake(self, session_id: str, peer_info: Optional[PeerInfo]):
        self._peers[session_id] = peer_info
        log.debug(f"Received MCP initialize request session={session_id} clientInfo={peer_info}")

    def lookup(self, session_id: str) -> Optional[PeerInfo]:
        return self._peers.get(session_id)

    def lookup_with_fallback(self, session_id: str) -> Optional[PeerInfo]:
        """Look up a session, falling back to the stdio entry.

        Covers the race where a call arrives before its session's
        initialize has been recorded.
        """
        return self._peers.get(session_id) or self._peers.get(STDIO_SESSION_ID)

    def forget(self, session_id: str):
        self._peers.pop(session_id, None)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._peers

    def __len__(self) -> int:
        return len(self._peers)

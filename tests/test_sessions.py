"""Tests for the session registry."""

from postman_mcp.server.sessions import SessionRegistry, STDIO_SESSION_ID


class TestSessionRegistry:
    def test_record_and_lookup(self):
        reg = SessionRegistry()
        reg.record_handshake("abc", {"name": "Claude", "version": "1.0"})
        assert reg.lookup("abc") == {"name": "Claude", "version": "1.0"}
        assert "abc" in reg
        assert len(reg) == 1

    def test_lookup_unknown(self):
        assert SessionRegistry().lookup("nope") is None

    def test_later_handshake_replaces(self):
        reg = SessionRegistry()
        reg.record_handshake("abc", {"name": "first"})
        reg.record_handshake("abc", {"name": "second"})
        assert reg.lookup("abc") == {"name": "second"}

    def test_fallback_to_stdio(self):
        reg = SessionRegistry()
        reg.record_handshake(STDIO_SESSION_ID, {"name": "Cursor"})
        assert reg.lookup_with_fallback("unknown") == {"name": "Cursor"}

    def test_own_entry_beats_fallback(self):
        reg = SessionRegistry()
        reg.record_handshake(STDIO_SESSION_ID, {"name": "Cursor"})
        reg.record_handshake("abc", {"name": "Claude"})
        assert reg.lookup_with_fallback("abc") == {"name": "Claude"}

    def test_fallback_without_stdio_entry(self):
        assert SessionRegistry().lookup_with_fallback("abc") is None

    def test_forget(self):
        reg = SessionRegistry()
        reg.record_handshake("abc", {"name": "Claude"})
        reg.forget("abc")
        reg.forget("abc")
        assert "abc" not in reg
        assert reg.lookup("abc") is None

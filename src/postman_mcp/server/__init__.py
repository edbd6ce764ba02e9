"""Postman MCP Server — JSON-RPC over stdio and HTTP+SSE."""

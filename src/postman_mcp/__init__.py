"""Postman MCP Server — Postman API tools for MCP agents over stdio or HTTP+SSE."""

__version__ = "0.1.0"

"""Backend API clients."""

from postman_mcp.clients.postman import PostmanAPIClient, PostmanAPIError

__all__ = ["PostmanAPIClient", "PostmanAPIError"]

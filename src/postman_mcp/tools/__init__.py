"""
Postman MCP Tools

Modules:
  workspaces    — user and workspace tools
  collections   — collection tools
  environments  — environment tools

The catalog is assembled statically; ENABLED_RESOURCES decides which tools
each tier exposes.
"""

from typing import Dict, Tuple

from postman_mcp.tools import collections, environments, workspaces
from postman_mcp.tools.registry import (
    ToolAnnotations,
    ToolContext,
    ToolDescriptor,
    ToolRegistry,
    ToolRegistryError,
)

ALL_TOOLS = workspaces.TOOLS + collections.TOOLS + environments.TOOLS

_MINIMAL = (
    "getAuthenticatedUser",
    "getWorkspaces",
    "getWorkspace",
    "getCollections",
    "getCollection",
    "getEnvironments",
)

ENABLED_RESOURCES: Dict[str, Tuple[str, ...]] = {
    "minimal": _MINIMAL,
    "full": _MINIMAL + (
        "createWorkspace",
        "deleteCollection",
        "getEnvironment",
        "createEnvironment",
    ),
}


def load_tools(tier: str) -> ToolRegistry:
    """Build the registry for a tier from the static catalog."""
    return ToolRegistry.load(tier, ALL_TOOLS, ENABLED_RESOURCES)


__all__ = [
    "ALL_TOOLS",
    "ENABLED_RESOURCES",
    "ToolAnnotations",
    "ToolContext",
    "ToolDescriptor",
    "ToolRegistry",
    "ToolRegistryError",
    "load_tools",
]

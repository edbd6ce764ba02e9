"""
Tool descriptors and the tiered registry built from them.
"""

import inspect
import json
from dataclasses import dataclass
from typing import (
    Annotated, Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Type,
)
from urllib.parse import quote

from pydantic import AfterValidator, BaseModel

from postman_mcp.server.logger import get_logger
from postman_mcp.server.protocol import tool_result_content, text_content

log = get_logger("tools.registry")


class ToolRegistryError(Exception):
    """A tool descriptor does not have the required shape."""


@dataclass(frozen=True)
class ToolAnnotations:
    title: Optional[str] = None
    read_only: Optional[bool] = None
    destructive: Optional[bool] = None
    idempotent: Optional[bool] = None

    def to_mcp(self) -> Dict[str, Any]:
        hints = {
            "title": self.title,
            "readOnlyHint": self.read_only,
            "destructiveHint": self.destructive,
            "idempotentHint": self.idempotent,
        }
        return {k: v for k, v in hints.items() if v is not None}


@dataclass(frozen=True)
class ToolContext:
    """What a handler gets besides its arguments."""

    client: Any
    headers: Mapping[str, Any]


ToolHandler = Callable[[BaseModel, ToolContext], Awaitable[Dict[str, Any]]]


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    parameters: Type[BaseModel]
    handler: ToolHandler
    annotations: Optional[ToolAnnotations] = None

    def parse_arguments(self, arguments: Optional[Dict[str, Any]]) -> BaseModel:
        """Validate raw arguments. Raises pydantic.ValidationError."""
        return self.parameters.model_validate(arguments or {})

    def to_mcp(self) -> Dict[str, Any]:
        """Render the tools/list entry."""
        entry = {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.parameters.model_json_schema(by_alias=True),
        }
        if self.annotations is not None:
            entry["annotations"] = self.annotations.to_mcp()
        return entry


def validate_descriptor(tool: Any):
    """Raise ToolRegistryError unless `tool` is a well-formed ToolDescriptor."""
    if not isinstance(tool, ToolDescriptor):
        raise ToolRegistryError(f"Not a ToolDescriptor: {tool!r}")
    if not isinstance(tool.name, str) or not tool.name.strip():
        raise ToolRegistryError(f"Tool has no name: {tool!r}")
    if not isinstance(tool.description, str) or not tool.description.strip():
        raise ToolRegistryError(f"Tool {tool.name} has no description")
    if not (inspect.isclass(tool.parameters) and issubclass(tool.parameters, BaseModel)):
        raise ToolRegistryError(f"Tool {tool.name} parameters must be a pydantic model class")
    if not callable(tool.handler):
        raise ToolRegistryError(f"Tool {tool.name} handler is not callable")


class ToolRegistry:
    """The active tier's tools, in catalog order."""

    def __init__(self, tier: str, tools: Sequence[ToolDescriptor]):
        self.tier = tier
        self._tools: Dict[str, ToolDescriptor] = {t.name: t for t in tools}

    @classmethod
    def load(
        cls,
        tier: str,
        descriptors: Iterable[ToolDescriptor],
        enabled: Mapping[str, Sequence[str]],
    ) -> "ToolRegistry":
        """Validate the whole catalog, then keep the tier's tools.

        Any malformed or duplicate descriptor fails the load as a whole.
        """
        if tier not in enabled:
            raise ToolRegistryError(f"Unknown tool tier: {tier}")

        seen: Dict[str, ToolDescriptor] = {}
        for tool in descriptors:
            validate_descriptor(tool)
            if tool.name in seen:
                raise ToolRegistryError(f"Duplicate tool name: {tool.name}")
            seen[tool.name] = tool

        wanted = set(enabled[tier])
        missing = wanted - set(seen)
        if missing:
            raise ToolRegistryError(f"Tier {tier} names unknown tools: {sorted(missing)}")

        tools = [t for t in seen.values() if t.name in wanted]
        log.info(f"Loaded {len(tools)} tools ({tier}): {[t.name for t in tools]}")
        return cls(tier, tools)

    def get(self, name: str) -> Optional[ToolDescriptor]:
        return self._tools.get(name)

    def list_tools(self) -> List[Dict[str, Any]]:
        return [t.to_mcp() for t in self._tools.values()]

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools


def json_result(data: Any) -> Dict[str, Any]:
    """Wrap a decoded API response as a single text content block."""
    return tool_result_content([text_content(json.dumps(data, indent=2, ensure_ascii=False))])


def _check_resource_id(value: str) -> str:
    # "", ".", ".." would be normalized away by the URL resolver
    if not value.strip("."):
        raise ValueError("must be a resource ID")
    return value


ResourceId = Annotated[str, AfterValidator(_check_resource_id)]


def path_segment(value: str) -> str:
    """Percent-encode a value as exactly one URL path segment."""
    return quote(value, safe="")

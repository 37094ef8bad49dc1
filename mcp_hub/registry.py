"""
Tool registry for MCP Hub Server.

Maps tool names to descriptors. Built once at startup from an ordered list
of providers and never modified afterwards.
"""

from typing import Any, Callable, Iterable

import structlog
from mcp.types import Tool

from .models import ToolDescriptor
from .utils import DuplicateToolError, UnknownTool

logger = structlog.get_logger(__name__)

ToolProvider = Callable[[], Iterable[ToolDescriptor]]


class ToolRegistry:
    """Immutable name -> descriptor mapping with dispatch."""

    def __init__(self, descriptors: Iterable[ToolDescriptor]):
        tools: dict[str, ToolDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in tools:
                raise DuplicateToolError(f"Tool registered twice: {descriptor.name}")
            tools[descriptor.name] = descriptor
        self._tools = tools
        logger.info("tool_registry_built", count=len(tools))

    @classmethod
    def from_providers(cls, providers: Iterable[ToolProvider]) -> "ToolRegistry":
        """Collect descriptors from each provider, in order."""
        return cls(descriptor for provider in providers for descriptor in provider())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def names(self) -> list[str]:
        return list(self._tools)

    def get(self, name: str) -> ToolDescriptor:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownTool(name) from None

    def list_tools(self) -> list[Tool]:
        """Wire descriptors for tools/list, in registration order."""
        return [descriptor.to_tool() for descriptor in self._tools.values()]

    async def dispatch(self, name: str, arguments: dict[str, Any] | None = None) -> Any:
        """Invoke the named tool with arguments as keyword arguments.

        Arguments are passed through unvalidated; a malformed call fails
        with whatever the handler raises.

        Raises:
            UnknownTool: If no tool has that name (nothing is invoked)
        """
        descriptor = self.get(name)
        logger.debug("tool_dispatch", tool=name)
        return await descriptor.handler(**(arguments or {}))

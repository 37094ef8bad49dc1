"""
Pydantic models for MCP Hub Server.

Contains the tool descriptor and the wire records returned by the adapters.
"""

from typing import Any, Awaitable, Callable

from mcp.types import Tool
from pydantic import BaseModel, ConfigDict, Field


ToolHandler = Callable[..., Awaitable[Any]]


class ToolDescriptor(BaseModel):
    """A named operation with its input schema and the coroutine that runs it."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    description: str
    input_schema: dict[str, Any]
    handler: ToolHandler = Field(exclude=True, repr=False)

    def to_tool(self) -> Tool:
        """Wire form of the descriptor (the handler is never sent)."""
        return Tool(name=self.name, description=self.description, inputSchema=self.input_schema)


class Entity(BaseModel):
    """A graph node as returned to clients."""

    id: str
    label: str | None = None
    name: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)


class Relationship(BaseModel):
    """A graph relationship as returned to clients."""

    id: str | None = None
    type: str
    properties: dict[str, Any] = Field(default_factory=dict)


class NoteSnippet(BaseModel):
    """A matching line inside a note."""

    line_number: int
    text: str


class NoteSearchHit(BaseModel):
    """A note matching a search query."""

    filename: str
    path: str
    match_count: int
    tags: list[str] = Field(default_factory=list)
    snippets: list[NoteSnippet] | None = None


class PullStatus(BaseModel):
    """Progress of a streamed model download."""

    success: bool = True
    model: str
    status: str = "pulling"
    digest: str | None = None
    total: int | None = None
    completed: int | None = None


class SubstoreStatus(BaseModel):
    """Outcome of one backend write inside a composite operation."""

    ok: bool
    error: str | None = None
    path: str | None = None

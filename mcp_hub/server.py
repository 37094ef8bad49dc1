"""
MCP dispatch server for MCP Hub Server.

Wires the adapters, the memory orchestrator and the tool registry into a
low-level mcp Server exposing tools, two resources and two prompts.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from typing import Any

from mcp import types
from mcp.server import Server

from . import graph_tools, inference_tools, memory_tools, note_tools
from .config import SERVER_NAME, SERVER_VERSION, Settings
from .graph import GraphClient
from .inference import OllamaClient
from .logging import get_logger
from .memory import MemoryOrchestrator
from .notes import NoteStore
from .registry import ToolRegistry
from .utils import PromptNotFound, ResourceNotFound

logger = get_logger(__name__)

HEALTH_URI = "health://status"
CONFIG_URI = f"config://{SERVER_NAME}"


@dataclass
class Hub:
    """Everything the server needs, built once at startup."""

    settings: Settings
    graph: GraphClient
    notes: NoteStore
    ollama: OllamaClient
    memory: MemoryOrchestrator
    registry: ToolRegistry


def build_registry(
    graph: GraphClient,
    notes: NoteStore,
    ollama: OllamaClient,
    memory: MemoryOrchestrator,
) -> ToolRegistry:
    """Registry over every tool provider, in a fixed order."""
    return ToolRegistry.from_providers([
        partial(graph_tools.provide, graph),
        partial(note_tools.provide, notes),
        partial(inference_tools.provide, ollama),
        partial(memory_tools.provide, memory),
    ])


def build_hub(settings: Settings) -> Hub:
    graph = GraphClient.from_settings(settings)
    notes = NoteStore(settings.vault_path)
    ollama = OllamaClient.from_settings(settings)
    memory = MemoryOrchestrator(graph, notes)
    registry = build_registry(graph, notes, ollama, memory)
    return Hub(
        settings=settings,
        graph=graph,
        notes=notes,
        ollama=ollama,
        memory=memory,
        registry=registry,
    )


# ============== Tools ==============

def _text_result(payload: Any, is_error: bool = False) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=json.dumps(payload, indent=2, default=str))],
        isError=is_error,
    )


async def call_tool_result(
    registry: ToolRegistry, name: str, arguments: dict[str, Any] | None
) -> types.CallToolResult:
    """Dispatch a tool call and wrap the outcome for the client.

    Failures never propagate: they come back as an error result carrying
    the message and the exception class name.
    """
    logger.info("tool_called", tool=name)
    try:
        result = await registry.dispatch(name, arguments or {})
    except Exception as e:
        logger.error("tool_failed", tool=name, error=str(e), kind=type(e).__name__)
        return _text_result({"error": str(e), "kind": type(e).__name__}, is_error=True)

    logger.info("tool_executed", tool=name)
    return _text_result(result)


# ============== Resources ==============

RESOURCES = [
    types.Resource(
        uri=HEALTH_URI,
        name="Health Status",
        description="Current status of the graph database, the inference server and the vault",
        mimeType="application/json",
    ),
    types.Resource(
        uri=CONFIG_URI,
        name="MCP Hub Configuration",
        description="Server name, version, tools and enabled backends",
        mimeType="application/json",
    ),
]


async def health_status(hub: Hub) -> dict:
    """Probe every backend now."""
    if not hub.graph.enabled:
        neo4j = "disabled"
    else:
        neo4j = "connected" if await hub.graph.check_connection() else "unreachable"

    if not hub.ollama.enabled:
        ollama = "disabled"
    else:
        ollama = "connected" if await hub.ollama.check_connection() else "unreachable"

    vault = "available" if hub.notes.vault_path.is_dir() else "missing"

    services = {"neo4j": neo4j, "ollama": ollama, "vault": vault}
    healthy = not any(state in ("unreachable", "missing") for state in services.values())
    return {
        "status": "healthy" if healthy else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": services,
    }


def config_summary(hub: Hub) -> dict:
    return {
        "name": SERVER_NAME,
        "version": SERVER_VERSION,
        "tools": len(hub.registry),
        "tool_names": hub.registry.names(),
        "neo4j_enabled": hub.settings.neo4j_enabled,
        "ollama_enabled": hub.settings.ollama_enabled,
        "ollama_url": hub.settings.ollama_base_url,
        "vault_path": str(hub.settings.vault_path),
    }


async def read_resource_text(hub: Hub, uri: str) -> str:
    if uri == HEALTH_URI:
        return json.dumps(await health_status(hub), indent=2)
    if uri == CONFIG_URI:
        return json.dumps(config_summary(hub), indent=2)
    raise ResourceNotFound(f"Resource not found: {uri}")


# ============== Prompts ==============

PROMPTS = [
    types.Prompt(
        name="analyze-memory",
        description="Analyze stored memory for patterns",
        arguments=[
            types.PromptArgument(name="query", description="Query to analyze", required=True),
        ],
    ),
    types.Prompt(
        name="store-observation",
        description="Store a new observation in memory",
        arguments=[
            types.PromptArgument(name="content", description="Content to store", required=True),
            types.PromptArgument(name="tags", description="Comma-separated tags", required=False),
        ],
    ),
]


def render_prompt(name: str, arguments: dict[str, str] | None) -> types.GetPromptResult:
    args = arguments or {}

    if name == "analyze-memory":
        text = f"Analyze the following memory query: {args.get('query', '')}"
    elif name == "store-observation":
        text = f"Store this observation: \"{args.get('content', '')}\"\nTags: {args.get('tags', '')}"
    else:
        raise PromptNotFound(f"Prompt not found: {name}")

    return types.GetPromptResult(
        messages=[
            types.PromptMessage(role="user", content=types.TextContent(type="text", text=text)),
        ],
    )


# ============== Server ==============

def create_server(hub: Hub) -> Server:
    """Low-level MCP server bound to the hub."""
    server = Server(SERVER_NAME, version=SERVER_VERSION)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return hub.registry.list_tools()

    # Tool handlers take arguments as given; schemas are advisory.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        return await call_tool_result(hub.registry, name, arguments)

    @server.list_resources()
    async def list_resources() -> list[types.Resource]:
        return RESOURCES

    @server.read_resource()
    async def read_resource(uri: Any) -> str:
        return await read_resource_text(hub, str(uri))

    @server.list_prompts()
    async def list_prompts() -> list[types.Prompt]:
        return PROMPTS

    @server.get_prompt()
    async def get_prompt(name: str, arguments: dict[str, str] | None) -> types.GetPromptResult:
        return render_prompt(name, arguments)

    logger.info("server_created", name=SERVER_NAME, tools=len(hub.registry))
    return server

"""
Memory tool descriptors for MCP Hub Server.
"""

from typing import Any

from .memory import DEFAULT_STRENGTH, MEMORY_TYPES, MemoryOrchestrator
from .models import ToolDescriptor


def provide(memory: MemoryOrchestrator) -> list[ToolDescriptor]:
    """Tool descriptors backed by the memory orchestrator."""

    async def search_memories_by_date(**arguments: Any) -> dict:
        # "from" is a keyword in Python
        if "from" in arguments:
            arguments["from_"] = arguments.pop("from")
        return await memory.search_memories_by_date(**arguments)

    return [
        ToolDescriptor(
            name="store_memory",
            description="Store a memory in the knowledge graph and mirror it as a vault note",
            input_schema={
                "type": "object",
                "properties": {
                    "content": {"type": "string", "description": "Memory content to store"},
                    "type": {
                        "type": "string",
                        "description": "Memory type",
                        "enum": list(MEMORY_TYPES)
                    },
                    "tags": {
                        "type": "array",
                        "description": "Tags for categorization",
                        "items": {"type": "string"}
                    },
                    "entities": {
                        "type": "array",
                        "description": "Named entities mentioned in the memory",
                        "items": {
                            "type": "object",
                            "properties": {
                                "name": {"type": "string"},
                                "label": {"type": "string"}
                            }
                        }
                    },
                    "importance": {
                        "type": "number",
                        "description": "Importance score 0-1 (default: 0.5)",
                        "minimum": 0,
                        "maximum": 1,
                        "default": 0.5
                    },
                    "source": {
                        "type": "string",
                        "description": "Source of the memory (user, system, external)",
                        "default": "user"
                    }
                },
                "required": ["content", "type"]
            },
            handler=memory.store_memory,
        ),
        ToolDescriptor(
            name="recall_memory",
            description="Recall memories matching a query from the graph and the vault",
            input_schema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Text to search for"},
                    "type": {"type": "string", "description": "Filter by memory type"},
                    "tags": {
                        "type": "array",
                        "description": "Filter by tags",
                        "items": {"type": "string"}
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum results (default: 10)",
                        "default": 10,
                        "minimum": 1
                    }
                },
                "required": ["query"]
            },
            handler=memory.recall_memory,
        ),
        ToolDescriptor(
            name="create_knowledge_link",
            description="Link two concepts, creating them if needed",
            input_schema={
                "type": "object",
                "properties": {
                    "from_name": {"type": "string", "description": "Source concept name"},
                    "to_name": {"type": "string", "description": "Target concept name"},
                    "relationship": {
                        "type": "string",
                        "description": "Type of relationship (relates_to, depends_on, similar_to, causes)"
                    },
                    "strength": {
                        "type": "number",
                        "description": "Strength of connection 0-1 (default: 0.5)",
                        "minimum": 0,
                        "maximum": 1,
                        "default": DEFAULT_STRENGTH
                    },
                    "notes": {"type": "string", "description": "Optional notes about the relationship"}
                },
                "required": ["from_name", "to_name", "relationship"]
            },
            handler=memory.create_knowledge_link,
        ),
        ToolDescriptor(
            name="get_knowledge_graph",
            description="Get the knowledge graph around a concept",
            input_schema={
                "type": "object",
                "properties": {
                    "concept": {"type": "string", "description": "Central concept to explore"},
                    "depth": {
                        "type": "integer",
                        "description": "Depth of traversal (default: 2)",
                        "default": 2,
                        "minimum": 1,
                        "maximum": 4
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum paths (default: 50)",
                        "default": 50
                    }
                },
                "required": ["concept"]
            },
            handler=memory.get_knowledge_graph,
        ),
        ToolDescriptor(
            name="search_memories_by_date",
            description="Search memories by creation date range",
            input_schema={
                "type": "object",
                "properties": {
                    "from": {"type": "string", "description": "Start date or timestamp (ISO format)"},
                    "to": {"type": "string", "description": "End date or timestamp (ISO format); a date covers the whole day"},
                    "type": {"type": "string", "description": "Filter by memory type"}
                }
            },
            handler=search_memories_by_date,
        ),
        ToolDescriptor(
            name="update_memory_importance",
            description="Update the importance score of a memory",
            input_schema={
                "type": "object",
                "properties": {
                    "id": {"type": "string", "description": "Memory id (mem_...) or entity element id"},
                    "importance": {
                        "type": "number",
                        "description": "New importance score 0-1",
                        "minimum": 0,
                        "maximum": 1
                    },
                    "reason": {"type": "string", "description": "Reason for the change"}
                },
                "required": ["id", "importance"]
            },
            handler=memory.update_memory_importance,
        ),
        ToolDescriptor(
            name="summarize_memories",
            description="Summarize stored memories by type and tag",
            input_schema={
                "type": "object",
                "properties": {
                    "type": {"type": "string", "description": "Filter by memory type"},
                    "tag": {"type": "string", "description": "Count memories with this tag"}
                }
            },
            handler=memory.summarize_memories,
        ),
    ]

"""
Graph tool descriptors for MCP Hub Server.

Schemas are advisory metadata for clients; arguments are passed to the
GraphClient methods as keyword arguments.
"""

from .graph import GraphClient
from .models import ToolDescriptor


def provide(graph: GraphClient) -> list[ToolDescriptor]:
    """Tool descriptors backed by the Neo4j adapter."""
    return [
        ToolDescriptor(
            name="create_entity",
            description="Create a new entity node in the Neo4j graph database",
            input_schema={
                "type": "object",
                "properties": {
                    "label": {
                        "type": "string",
                        "description": "Entity label (e.g., Person, Concept, Event)"
                    },
                    "name": {
                        "type": "string",
                        "description": "Entity name"
                    },
                    "properties": {
                        "type": "object",
                        "description": "Additional properties as key-value pairs",
                        "additionalProperties": True
                    }
                },
                "required": ["label", "name"]
            },
            handler=graph.create_entity,
        ),
        ToolDescriptor(
            name="update_entity",
            description="Update an existing entity in Neo4j (properties are merged)",
            input_schema={
                "type": "object",
                "properties": {
                    "id": {
                        "type": "string",
                        "description": "Entity internal ID (elementId)"
                    },
                    "properties": {
                        "type": "object",
                        "description": "Properties to update",
                        "additionalProperties": True
                    }
                },
                "required": ["id", "properties"]
            },
            handler=graph.update_entity,
        ),
        ToolDescriptor(
            name="delete_entity",
            description="Delete an entity from Neo4j",
            input_schema={
                "type": "object",
                "properties": {
                    "id": {
                        "type": "string",
                        "description": "Entity internal ID (elementId)"
                    },
                    "detach": {
                        "type": "boolean",
                        "description": "Delete relationships too (default: false)",
                        "default": False
                    }
                },
                "required": ["id"]
            },
            handler=graph.delete_entity,
        ),
        ToolDescriptor(
            name="create_relationship",
            description="Create a relationship between two entities matched by label and name",
            input_schema={
                "type": "object",
                "properties": {
                    "from_label": {"type": "string", "description": "Source entity label"},
                    "from_name": {"type": "string", "description": "Source entity name"},
                    "to_label": {"type": "string", "description": "Target entity label"},
                    "to_name": {"type": "string", "description": "Target entity name"},
                    "relationship_type": {
                        "type": "string",
                        "description": "Type of relationship (e.g., KNOWS, RELATED_TO, PART_OF); uppercased"
                    },
                    "properties": {
                        "type": "object",
                        "description": "Relationship properties",
                        "additionalProperties": True
                    }
                },
                "required": ["from_label", "from_name", "to_label", "to_name", "relationship_type"]
            },
            handler=graph.create_relationship,
        ),
        ToolDescriptor(
            name="query_graph",
            description="Execute a Cypher query on Neo4j",
            input_schema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Cypher query to execute"},
                    "params": {
                        "type": "object",
                        "description": "Query parameters",
                        "additionalProperties": True
                    }
                },
                "required": ["query"]
            },
            handler=graph.query_graph,
        ),
        ToolDescriptor(
            name="find_entities",
            description="Find entities by label and/or partial name",
            input_schema={
                "type": "object",
                "properties": {
                    "label": {"type": "string", "description": "Entity label to filter by"},
                    "name_contains": {"type": "string", "description": "Partial name match"},
                    "limit": {
                        "type": "integer",
                        "description": "Maximum results (default: 50)",
                        "default": 50
                    }
                }
            },
            handler=graph.find_entities,
        ),
        ToolDescriptor(
            name="get_entity_context",
            description="Get an entity with its relationships and neighbors",
            input_schema={
                "type": "object",
                "properties": {
                    "label": {"type": "string", "description": "Entity label"},
                    "name": {"type": "string", "description": "Entity name"},
                    "depth": {
                        "type": "integer",
                        "description": "Relationship depth to traverse (default: 1)",
                        "default": 1,
                        "minimum": 1
                    }
                },
                "required": ["label", "name"]
            },
            handler=graph.get_entity_context,
        ),
    ]

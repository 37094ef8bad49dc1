"""
Vault tool descriptors for MCP Hub Server.
"""

from .models import ToolDescriptor
from .notes import TEMPLATES, NoteStore


def provide(notes: NoteStore) -> list[ToolDescriptor]:
    """Tool descriptors backed by the markdown vault."""
    return [
        ToolDescriptor(
            name="read_note",
            description="Read a markdown note from the vault",
            input_schema={
                "type": "object",
                "properties": {
                    "filename": {
                        "type": "string",
                        "description": "Note filename (with or without .md extension)"
                    },
                    "parse_frontmatter": {
                        "type": "boolean",
                        "description": "Parse the front-matter block (default: true)",
                        "default": True
                    }
                },
                "required": ["filename"]
            },
            handler=notes.read_note,
        ),
        ToolDescriptor(
            name="write_note",
            description="Write or overwrite a markdown note in the vault",
            input_schema={
                "type": "object",
                "properties": {
                    "filename": {
                        "type": "string",
                        "description": "Note filename (with or without .md extension)"
                    },
                    "content": {
                        "type": "string",
                        "description": "Note content in markdown format"
                    },
                    "frontmatter": {
                        "type": "object",
                        "description": "Front-matter to add at the top",
                        "additionalProperties": True
                    },
                    "create_dirs": {
                        "type": "boolean",
                        "description": "Create directories if needed (default: true)",
                        "default": True
                    }
                },
                "required": ["filename", "content"]
            },
            handler=notes.write_note,
        ),
        ToolDescriptor(
            name="append_note",
            description="Append content to an existing note",
            input_schema={
                "type": "object",
                "properties": {
                    "filename": {"type": "string", "description": "Note filename"},
                    "content": {"type": "string", "description": "Content to append"},
                    "separator": {
                        "type": "string",
                        "description": "Separator between existing and new content (default: blank line)",
                        "default": "\n\n"
                    }
                },
                "required": ["filename", "content"]
            },
            handler=notes.append_note,
        ),
        ToolDescriptor(
            name="list_notes",
            description="List notes in the vault with optional filtering",
            input_schema={
                "type": "object",
                "properties": {
                    "directory": {"type": "string", "description": "Directory to list (default: root)"},
                    "tag": {"type": "string", "description": "Filter by tag in front-matter"},
                    "recursive": {
                        "type": "boolean",
                        "description": "List recursively (default: true)",
                        "default": True
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum results (default: 100)",
                        "default": 100,
                        "minimum": 1
                    }
                }
            },
            handler=notes.list_notes,
        ),
        ToolDescriptor(
            name="search_notes",
            description="Search for notes containing text",
            input_schema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Text to search for"},
                    "case_sensitive": {
                        "type": "boolean",
                        "description": "Case sensitive search (default: false)",
                        "default": False
                    },
                    "include_content": {
                        "type": "boolean",
                        "description": "Include matching line snippets (default: false)",
                        "default": False
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum results (default: 50)",
                        "default": 50,
                        "minimum": 1
                    },
                    "directory": {"type": "string", "description": "Only search below this directory"}
                },
                "required": ["query"]
            },
            handler=notes.search_notes,
        ),
        ToolDescriptor(
            name="create_note",
            description="Create a new note with timestamp and optional template",
            input_schema={
                "type": "object",
                "properties": {
                    "filename": {"type": "string", "description": "Note filename"},
                    "title": {"type": "string", "description": "Note title (used in heading and front-matter)"},
                    "content": {"type": "string", "description": "Note content"},
                    "tags": {
                        "type": "array",
                        "description": "Tags to add",
                        "items": {"type": "string"}
                    },
                    "template": {
                        "type": "string",
                        "description": "Template name",
                        "enum": list(TEMPLATES),
                        "default": "default"
                    }
                },
                "required": ["filename", "content"]
            },
            handler=notes.create_note,
        ),
        ToolDescriptor(
            name="delete_note",
            description="Delete a note from the vault",
            input_schema={
                "type": "object",
                "properties": {
                    "filename": {"type": "string", "description": "Note filename"}
                },
                "required": ["filename"]
            },
            handler=notes.delete_note,
        ),
    ]

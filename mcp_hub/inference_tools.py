"""
Ollama tool descriptors for MCP Hub Server.
"""

from .inference import DEFAULT_EMBED_MODEL, OllamaClient
from .models import ToolDescriptor


def provide(ollama: OllamaClient) -> list[ToolDescriptor]:
    """Tool descriptors backed by the Ollama adapter."""
    return [
        ToolDescriptor(
            name="ollama_chat",
            description="Send a chat message to an Ollama model and get a response",
            input_schema={
                "type": "object",
                "properties": {
                    "model": {
                        "type": "string",
                        "description": "Model name (e.g., llama3.2, mistral, deepseek-r1)"
                    },
                    "prompt": {"type": "string", "description": "User message"},
                    "system": {"type": "string", "description": "Optional system prompt"},
                    "temperature": {
                        "type": "number",
                        "description": "Temperature 0-1 (default: 0.7)",
                        "minimum": 0,
                        "maximum": 1,
                        "default": 0.7
                    }
                },
                "required": ["model", "prompt"]
            },
            handler=ollama.chat,
        ),
        ToolDescriptor(
            name="ollama_complete",
            description="Text completion using Ollama",
            input_schema={
                "type": "object",
                "properties": {
                    "model": {"type": "string", "description": "Model name"},
                    "prompt": {"type": "string", "description": "Text to complete"},
                    "suffix": {"type": "string", "description": "Optional text to guide completion"},
                    "options": {
                        "type": "object",
                        "description": "Additional model options",
                        "additionalProperties": True
                    }
                },
                "required": ["model", "prompt"]
            },
            handler=ollama.complete,
        ),
        ToolDescriptor(
            name="ollama_embed",
            description="Generate embeddings for text using Ollama",
            input_schema={
                "type": "object",
                "properties": {
                    "model": {
                        "type": "string",
                        "description": f"Embedding model name (default: {DEFAULT_EMBED_MODEL})",
                        "default": DEFAULT_EMBED_MODEL
                    },
                    "text": {"type": "string", "description": "Text to embed"}
                },
                "required": ["text"]
            },
            handler=ollama.embed,
        ),
        ToolDescriptor(
            name="ollama_list_models",
            description="List available Ollama models",
            input_schema={"type": "object", "properties": {}},
            handler=ollama.list_models,
        ),
        ToolDescriptor(
            name="ollama_pull_model",
            description="Pull a model from the Ollama registry",
            input_schema={
                "type": "object",
                "properties": {
                    "model": {"type": "string", "description": "Model name to pull (e.g., llama3.2)"},
                    "insecure": {
                        "type": "boolean",
                        "description": "Allow insecure connections (default: false)",
                        "default": False
                    }
                },
                "required": ["model"]
            },
            handler=ollama.pull_model,
        ),
        ToolDescriptor(
            name="ollama_show_model_info",
            description="Get detailed information about a model",
            input_schema={
                "type": "object",
                "properties": {
                    "model": {"type": "string", "description": "Model name"}
                },
                "required": ["model"]
            },
            handler=ollama.show_model_info,
        ),
    ]

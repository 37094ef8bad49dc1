# MCP Hub Server
#
# Modular package structure:
# - config.py: Settings loaded from the environment
# - logging.py: structlog configuration
# - utils.py: Exceptions, front-matter codec, path helpers
# - models.py: Pydantic models (tool descriptors, graph records)
# - graph.py: Neo4j adapter
# - notes.py: Markdown vault adapter
# - inference.py: Ollama HTTP adapter
# - memory.py: Composite memory operations over graph + vault
# - *_tools.py: Tool descriptors for each adapter
# - registry.py: Tool registry and dispatch
# - server.py: MCP request handlers (tools, resources, prompts)
# - main.py: Entry point and process lifecycle

__version__ = "1.0.0"

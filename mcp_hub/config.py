"""
Configuration module for MCP Hub Server.

Uses pydantic-settings for configuration management with environment variable support.
Values are read once at startup; there is no hot reload.
"""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

SERVER_NAME = "mcp-hub"
SERVER_VERSION = "1.0.0"


class Settings(BaseSettings):
    """Application settings with environment variable support.

    Environment variables:
    - NEO4J_ENABLED / NEO4J_URI / NEO4J_USER / NEO4J_PASSWORD / NEO4J_DATABASE
    - OLLAMA_ENABLED / OLLAMA_HOST / OLLAMA_PORT
    - OBSIDIAN_VAULT (or VAULT_PATH): Root directory of the note vault
    - LOG_LEVEL: Minimum level for structlog output
    """

    neo4j_enabled: bool = True
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_password: str = "password"
    neo4j_database: str | None = None

    ollama_enabled: bool = True
    ollama_host: str = "localhost"
    ollama_port: int = 11434

    vault_path: Path = Field(
        default=Path("/vault"),
        validation_alias=AliasChoices("OBSIDIAN_VAULT", "VAULT_PATH", "vault_path"),
    )
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    @property
    def ollama_base_url(self) -> str:
        return f"http://{self.ollama_host}:{self.ollama_port}"


# Global settings instance
settings = Settings()

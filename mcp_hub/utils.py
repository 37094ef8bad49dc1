"""
Utility functions and compiled regex patterns for MCP Hub Server.

Contains the exception taxonomy, the front-matter codec, vault path
helpers and timestamp helpers.
"""

import re
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any

# Pre-compiled regex patterns
FRONTMATTER_PATTERN = re.compile(r'^---\n(?:(.*?)\n)?---\n(.*)$', re.DOTALL)
QUOTE_EDGES_PATTERN = re.compile(r'^"|"$')
CYPHER_IDENTIFIER_ESCAPE = re.compile(r'`')

NOTE_EXTENSION = ".md"


# ============== Exceptions ==============

class HubError(Exception):
    """Base class for errors raised by hub components."""
    pass


class UnknownTool(HubError):
    """Raised when a tool name is not registered."""

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class DuplicateToolError(HubError):
    """Raised when two providers register the same tool name."""
    pass


class ValidationFailure(HubError):
    """Raised when tool arguments fail validation."""
    pass


class EntityNotFound(HubError):
    """Raised when no graph node matches the requested entity."""
    pass


class EndpointNotFound(HubError):
    """Raised when one or both relationship endpoints do not exist."""
    pass


class NoteNotFound(HubError):
    """Raised when a note does not exist in the vault."""
    pass


class PathValidationError(HubError):
    """Raised when a note path would escape the vault."""
    pass


class ServiceUnreachable(HubError):
    """Raised when a backend service cannot be reached (or is disabled)."""
    pass


class ServiceError(HubError):
    """Raised when a backend service is reachable but reports a failure."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ModelPullError(ServiceError):
    """Raised when a model download stream reports an error record."""
    pass


class UnexpectedResponseShape(HubError):
    """Raised when an inference response carries neither known result shape."""
    pass


class NoEmbeddingReturned(HubError):
    """Raised when an embedding request returns no vectors."""
    pass


class ResourceNotFound(HubError):
    """Raised when a resource URI is not served by the hub."""
    pass


class PromptNotFound(HubError):
    """Raised when a prompt name is not served by the hub."""
    pass


# ============== Timestamps ==============

def now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ============== Front-matter ==============

def _parse_scalar(value: str) -> Any:
    if value.startswith("[") and value.endswith("]"):
        inner = value[1:-1].strip()
        if not inner:
            return []
        return [QUOTE_EDGES_PATTERN.sub("", item.strip()) for item in inner.split(",")]
    if value == "true":
        return True
    if value == "false":
        return False
    return _strip_quotes(value)


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    return value


def parse_frontmatter(content: str) -> tuple[dict[str, Any] | None, str]:
    """Split note content into its front-matter map and body.

    The block is scanned line by line as flat ``key: value`` pairs.
    Bracketed comma lists become lists of strings (a leading or trailing
    double quote dropped from each item), ``true``/``false`` become
    booleans and everything else is a string (a surrounding pair of double
    quotes removed). Nested structures and multi-line values are not
    supported.

    Returns:
        (frontmatter, body). Without a block, frontmatter is None and the
        body is the untouched content; otherwise the body is stripped.
    """
    match = FRONTMATTER_PATTERN.match(content)
    if not match:
        return None, content

    frontmatter: dict[str, Any] = {}
    for line in (match.group(1) or "").split("\n"):
        key, sep, value = line.partition(":")
        key = key.strip()
        if not sep or not key:
            continue
        frontmatter[key] = _parse_scalar(value.strip())

    return frontmatter, match.group(2).strip()


def build_frontmatter(frontmatter: dict[str, Any] | None) -> str:
    """Serialize a flat mapping into a front-matter block.

    Lists are written as quoted bracket lists, booleans unquoted and any
    other scalar quoted. None values are skipped.
    """
    if not frontmatter:
        return ""

    lines = ["---"]
    for key, value in frontmatter.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            items = ", ".join(f'"{item}"' for item in value)
            lines.append(f"{key}: [{items}]")
        elif isinstance(value, bool):
            lines.append(f"{key}: {'true' if value else 'false'}")
        else:
            lines.append(f'{key}: "{value}"')
    lines.append("---")
    lines.append("")
    return "\n".join(lines)


# ============== Vault paths ==============

def normalize_note_name(filename: str) -> str:
    """Strip a leading separator and append the markdown extension if missing."""
    name = filename.strip().replace("\\", "/").lstrip("/")
    if not name.endswith(NOTE_EXTENSION):
        name += NOTE_EXTENSION
    return name


def resolve_in_vault(relative: str, vault_path: Path) -> Path:
    """Resolve a vault-relative path and make sure it stays inside the vault.

    Raises:
        PathValidationError: If the path is empty or escapes the vault
    """
    cleaned = relative.strip().replace("\\", "/").lstrip("/")
    if ".." in PurePosixPath(cleaned).parts:
        raise PathValidationError("Path traversal detected: '..' is not allowed")
    if len(cleaned) > 1 and cleaned[1] == ":":
        raise PathValidationError("Absolute paths are not allowed")

    vault_resolved = vault_path.resolve()
    full_path = (vault_resolved / cleaned).resolve()
    try:
        full_path.relative_to(vault_resolved)
    except ValueError:
        raise PathValidationError(f"Path escapes vault directory: {relative}")

    return full_path


def note_path(filename: str, vault_path: Path) -> Path:
    """Absolute path of a note given its (possibly extension-less) name."""
    if not filename or not filename.strip():
        raise PathValidationError("Path cannot be empty")
    return resolve_in_vault(normalize_note_name(filename), vault_path)


# ============== Cypher ==============

def quote_identifier(name: str) -> str:
    """Backtick-quote a label or relationship type for interpolation into Cypher."""
    if not name or not name.strip():
        raise ValidationFailure("Label or relationship type cannot be empty")
    return "`" + CYPHER_IDENTIFIER_ESCAPE.sub("``", name.strip()) + "`"

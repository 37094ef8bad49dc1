"""
Markdown vault adapter for MCP Hub Server.

Reads, writes and searches notes under the configured vault root. Notes are
identified by their vault-relative path; there is no index, every listing
and search walks the tree.
"""

import re
from datetime import datetime
from pathlib import Path
from typing import Any

import aiofiles
import structlog

from .models import NoteSearchHit, NoteSnippet
from .utils import (
    NOTE_EXTENSION,
    NoteNotFound,
    build_frontmatter,
    note_path,
    now_iso,
    parse_frontmatter as split_frontmatter,
    resolve_in_vault,
)

logger = structlog.get_logger(__name__)

MAX_SNIPPETS = 5
MAX_SNIPPET_LENGTH = 200
TEMPLATES = ("default", "journal", "meeting", "log")


def _tag_list(value: Any) -> list[str]:
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return [str(v) for v in value]
    return [str(value)]


class NoteStore:
    """File-backed note operations rooted at a vault directory."""

    def __init__(self, vault_path: Path):
        self.vault_path = vault_path

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.vault_path.resolve()).as_posix()

    def _markdown_files(self, root: Path, recursive: bool = True) -> list[Path]:
        """Markdown files under root, skipping hidden folders, in a stable order."""
        if not root.is_dir():
            return []
        candidates = root.rglob(f"*{NOTE_EXTENSION}") if recursive else root.glob(f"*{NOTE_EXTENSION}")
        files = []
        for path in candidates:
            rel_parts = path.relative_to(root).parts
            if any(part.startswith(".") for part in rel_parts):
                continue
            if path.is_file():
                files.append(path)
        return sorted(files)

    @staticmethod
    async def _read(path: Path) -> str:
        async with aiofiles.open(path, encoding="utf-8") as f:
            return await f.read()

    @staticmethod
    async def _write(path: Path, content: str) -> None:
        async with aiofiles.open(path, mode="w", encoding="utf-8") as f:
            await f.write(content)

    async def read_note(self, filename: str, parse_frontmatter: bool = True) -> dict:
        """Read a note, optionally splitting off its front-matter."""
        path = note_path(filename, self.vault_path)
        if not path.is_file():
            raise NoteNotFound(f"Note not found: {filename}")

        content = await self._read(path)
        result: dict[str, Any] = {
            "success": True,
            "filename": filename,
            "path": self._relative(path),
        }
        if parse_frontmatter:
            frontmatter, body = split_frontmatter(content)
            result["frontmatter"] = frontmatter
            result["content"] = body
        else:
            result["content"] = content

        logger.info("note_read", filename=filename)
        return result

    async def write_note(
        self,
        filename: str,
        content: str,
        frontmatter: dict[str, Any] | None = None,
        create_dirs: bool = True,
    ) -> dict:
        """Write (or overwrite) a note with optional front-matter."""
        path = note_path(filename, self.vault_path)
        if create_dirs:
            path.parent.mkdir(parents=True, exist_ok=True)

        full_content = content
        if frontmatter:
            full_content = build_frontmatter(frontmatter) + "\n" + content

        await self._write(path, full_content)
        logger.info("note_written", filename=filename, path=self._relative(path))
        return {
            "success": True,
            "filename": filename,
            "path": self._relative(path),
            "size": len(full_content.encode("utf-8")),
        }

    async def append_note(self, filename: str, content: str, separator: str = "\n\n") -> dict:
        """Append to an existing note; never creates one."""
        path = note_path(filename, self.vault_path)
        if not path.is_file():
            raise NoteNotFound(f"Note not found: {filename}. Use write_note to create new notes.")

        existing = await self._read(path)
        new_content = existing + separator + content
        await self._write(path, new_content)

        logger.info("note_appended", filename=filename)
        return {
            "success": True,
            "filename": filename,
            "previous_size": len(existing.encode("utf-8")),
            "new_size": len(new_content.encode("utf-8")),
        }

    async def list_notes(
        self,
        directory: str = "",
        tag: str | None = None,
        recursive: bool = True,
        limit: int = 100,
    ) -> dict:
        """List notes, optionally only those whose front-matter tags contain tag."""
        root = resolve_in_vault(directory, self.vault_path) if directory else self.vault_path.resolve()
        notes: list[dict] = []

        for path in self._markdown_files(root, recursive):
            if len(notes) >= limit:
                break
            if tag:
                try:
                    frontmatter, _ = split_frontmatter(await self._read(path))
                except (OSError, UnicodeDecodeError) as e:
                    logger.warning("note_read_failed", path=str(path), error=str(e))
                    continue
                if tag not in _tag_list((frontmatter or {}).get("tags")):
                    continue

            rel = self._relative(path)
            notes.append({
                "filename": path.name,
                "path": rel,
                "directory": Path(rel).parent.as_posix(),
            })

        logger.info("notes_listed", count=len(notes), directory=directory, tag=tag)
        return {"success": True, "notes": notes, "count": len(notes)}

    async def search_notes(
        self,
        query: str,
        case_sensitive: bool = False,
        include_content: bool = False,
        limit: int = 50,
        directory: str = "",
    ) -> dict:
        """Literal text search over the full content of every note."""
        pattern = re.compile(re.escape(query), 0 if case_sensitive else re.IGNORECASE)
        root = resolve_in_vault(directory, self.vault_path) if directory else self.vault_path.resolve()
        hits: list[NoteSearchHit] = []

        for path in self._markdown_files(root):
            if len(hits) >= limit:
                break
            try:
                content = await self._read(path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("note_read_failed", path=str(path), error=str(e))
                continue

            matches = pattern.findall(content)
            if not matches:
                continue

            frontmatter, _ = split_frontmatter(content)
            hit = NoteSearchHit(
                filename=path.name,
                path=self._relative(path),
                match_count=len(matches),
                tags=_tag_list((frontmatter or {}).get("tags")),
            )
            if include_content:
                snippets = []
                for index, line in enumerate(content.split("\n")):
                    if pattern.search(line):
                        snippets.append(NoteSnippet(line_number=index + 1, text=line.strip()[:MAX_SNIPPET_LENGTH]))
                        if len(snippets) >= MAX_SNIPPETS:
                            break
                hit.snippets = snippets
            hits.append(hit)

        logger.info("search_completed", query=query, count=len(hits))
        return {
            "success": True,
            "query": query,
            "results": [h.model_dump(exclude_none=True) for h in hits],
            "count": len(hits),
        }

    async def create_note(
        self,
        filename: str,
        content: str,
        title: str | None = None,
        tags: list[str] | None = None,
        template: str = "default",
    ) -> dict:
        """Create a note from one of the templates: default, journal, meeting, log."""
        now = datetime.now().astimezone()
        timestamp = now_iso()
        frontmatter: dict[str, Any] = {"created": timestamp, "tags": list(tags or [])}
        if title:
            frontmatter["title"] = title

        if template == "journal":
            frontmatter["type"] = "journal"
            full_content = f"# {title or now.strftime('%Y-%m-%d')}\n\n{content}"
        elif template == "meeting":
            frontmatter["type"] = "meeting"
            full_content = f"# {title or 'Meeting'}\n\n**Date:** {now.strftime('%Y-%m-%d %H:%M')}\n\n{content}"
        elif template == "log":
            frontmatter["type"] = "log"
            full_content = f"# {title or 'Log Entry'}\n\n**Timestamp:** {timestamp}\n\n{content}"
        else:
            full_content = f"# {title}\n\n{content}" if title else content

        return await self.write_note(filename, full_content, frontmatter=frontmatter, create_dirs=True)

    async def delete_note(self, filename: str) -> dict:
        """Delete a note. Deleting an absent note is not an error."""
        path = note_path(filename, self.vault_path)
        try:
            path.unlink()
        except FileNotFoundError:
            return {
                "success": True,
                "filename": filename,
                "deleted": False,
                "message": "File does not exist",
            }

        logger.info("note_deleted", filename=filename)
        return {"success": True, "filename": filename, "deleted": True}

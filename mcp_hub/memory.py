"""
Memory orchestration for MCP Hub Server.

A memory is stored twice: as a Memory node in the graph (linked to its tags
and mentioned entities) and as a log note under memory/<date>/ in the vault.
The two writes are independent; there is no transaction spanning them.
"""

import re
import secrets
import string
import time
from typing import Any

import structlog

from .graph import GraphClient
from .models import SubstoreStatus
from .notes import NoteStore
from .utils import EndpointNotFound, now_iso

logger = structlog.get_logger(__name__)

MEMORY_TYPES = ("fact", "concept", "event", "observation", "task")
MEMORY_DIRECTORY = "memory"
DEFAULT_STRENGTH = 0.5

DATE_ONLY_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
_ID_ALPHABET = string.digits + string.ascii_lowercase


def new_memory_id() -> str:
    """mem_<epoch ms>_<9 random base-36 chars>"""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"mem_{int(time.time() * 1000)}_{suffix}"


def _memory_record(properties: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": properties.get("id"),
        "content": properties.get("content"),
        "type": properties.get("type"),
        "importance": properties.get("importance"),
        "createdAt": properties.get("createdAt"),
    }


class MemoryOrchestrator:
    """Composite memory operations over the graph and the vault."""

    def __init__(self, graph: GraphClient, notes: NoteStore):
        self.graph = graph
        self.notes = notes

    async def store_memory(
        self,
        content: str,
        type: str,
        tags: list[str] | None = None,
        entities: list[dict[str, str]] | None = None,
        importance: float = 0.5,
        source: str = "user",
    ) -> dict:
        """Store a memory in the graph and mirror it as a vault note.

        Tag and entity links are best effort; their failures are collected
        in ``warnings``. The result reports each store's outcome separately
        and succeeds when at least one store took the memory.
        """
        tags = list(tags or [])
        entities = list(entities or [])
        timestamp = now_iso()
        memory_id = new_memory_id()
        memory_name = f"Memory_{memory_id}"
        warnings: list[str] = []

        graph_status = SubstoreStatus(ok=False)
        try:
            await self.graph.create_entity(
                label="Memory",
                name=memory_name,
                properties={
                    "id": memory_id,
                    "content": content,
                    "type": type,
                    "importance": importance,
                    "source": source,
                },
            )
            graph_status.ok = True
        except Exception as e:
            logger.error("memory_graph_store_failed", memory_id=memory_id, error=str(e))
            graph_status.error = str(e)

        if graph_status.ok:
            for tag in tags:
                try:
                    await self.graph.merge_entity("Tag", tag)
                    await self.graph.create_relationship(
                        from_label="Memory",
                        from_name=memory_name,
                        to_label="Tag",
                        to_name=tag,
                        relationship_type="TAGGED_WITH",
                    )
                except Exception as e:
                    logger.debug("memory_tag_link_skipped", tag=tag, error=str(e))
                    warnings.append(f"tag {tag}: {e}")

            for entity in entities:
                label = entity.get("label") or "Entity"
                name = entity.get("name")
                try:
                    await self.graph.create_relationship(
                        from_label="Memory",
                        from_name=memory_name,
                        to_label=label,
                        to_name=name,
                        relationship_type="MENTIONS",
                    )
                except Exception as e:
                    logger.debug("memory_entity_link_skipped", label=label, name=name, error=str(e))
                    warnings.append(f"entity {label}:{name}: {e}")

            logger.info("memory_stored_in_graph", memory_id=memory_id, type=type)

        # Front-matter values are single-line
        headline = " ".join(content[:50].split())
        filename = f"{MEMORY_DIRECTORY}/{timestamp[:10]}/{memory_id}.md"
        notes_status = SubstoreStatus(ok=False)
        try:
            await self.notes.create_note(
                filename=filename,
                title=f"{type[:1].upper()}{type[1:]}: {headline}...",
                content=content,
                tags=["memory", type, *tags],
                template="log",
            )
            notes_status.ok = True
            notes_status.path = filename
            logger.info("memory_stored_in_notes", memory_id=memory_id, filename=filename)
        except Exception as e:
            logger.error("memory_notes_store_failed", memory_id=memory_id, error=str(e))
            notes_status.error = str(e)

        return {
            "success": graph_status.ok or notes_status.ok,
            "memoryId": memory_id,
            "type": type,
            "importance": importance,
            "timestamp": timestamp,
            "stored": {
                "graph": graph_status.model_dump(exclude_none=True),
                "notes": notes_status.model_dump(exclude_none=True),
            },
            "warnings": warnings,
        }

    async def recall_memory(
        self,
        query: str,
        type: str | None = None,
        tags: list[str] | None = None,
        limit: int = 10,
    ) -> dict:
        """Search memories in both stores; graph results come first."""
        limit = int(limit)
        graph_hits: list[dict] = []
        note_hits: list[dict] = []
        errors: dict[str, str] = {}

        try:
            found = await self.graph.search_memories(query, type=type, tags=tags, limit=limit)
            graph_hits = [{**_memory_record(m), "origin": "graph"} for m in found]
            logger.info("memory_graph_recall", query=query, found=len(graph_hits))
        except Exception as e:
            logger.error("memory_graph_recall_failed", query=query, error=str(e))
            errors["graph"] = str(e)

        try:
            result = await self.notes.search_notes(
                query,
                case_sensitive=False,
                include_content=True,
                limit=limit,
            )
            for hit in result["results"]:
                hit_tags = hit.get("tags") or []
                if type and type not in hit_tags:
                    continue
                if tags and not any(tag in hit_tags for tag in tags):
                    continue
                note_hits.append({
                    "id": hit["filename"].removesuffix(".md"),
                    "content": "\n".join(s["text"] for s in hit.get("snippets") or []),
                    "path": hit["path"],
                    "tags": hit_tags,
                    "origin": "notes",
                })
            logger.info("memory_notes_recall", query=query, found=len(note_hits))
        except Exception as e:
            logger.error("memory_notes_recall_failed", query=query, error=str(e))
            errors["notes"] = str(e)

        memories = graph_hits + note_hits
        response: dict[str, Any] = {
            "success": True,
            "query": query,
            "memories": memories[:limit],
            "counts": {
                "graph": len(graph_hits),
                "notes": len(note_hits),
                "total": len(memories),
            },
        }
        if errors:
            response["errors"] = errors
        return response

    async def create_knowledge_link(
        self,
        from_name: str,
        to_name: str,
        relationship: str,
        strength: float = DEFAULT_STRENGTH,
        notes: str | None = None,
    ) -> dict:
        """Link two concepts, creating either one if it does not exist yet.

        Repeating the call adds another, parallel relationship.
        """
        properties: dict[str, Any] = {"strength": strength}
        if notes:
            properties["notes"] = notes

        link = {
            "from_label": "Concept",
            "from_name": from_name,
            "to_label": "Concept",
            "to_name": to_name,
            "relationship_type": relationship.upper(),
            "properties": properties,
        }
        created = False
        try:
            result = await self.graph.create_relationship(**link)
        except EndpointNotFound:
            logger.info("knowledge_link_creating_concepts", source=from_name, target=to_name)
            await self.graph.merge_entity("Concept", from_name)
            await self.graph.merge_entity("Concept", to_name)
            result = await self.graph.create_relationship(**link)
            created = True

        logger.info("knowledge_link_created", source=from_name, target=to_name, type=link["relationship_type"])
        return {**result, "success": True, "created": created}

    async def get_knowledge_graph(self, concept: str, depth: int = 2, limit: int = 50) -> dict:
        """Nodes and links around a concept, each node and link listed once."""
        rows = await self.graph.concept_neighbourhood(concept, depth=depth, limit=limit)

        nodes: dict[str, dict] = {}
        links: dict[str, dict] = {}
        for row in rows:
            for node in (row["center"], row["related"]):
                if node and node.get("name") not in nodes:
                    nodes[node.get("name")] = {
                        "id": node.get("id"),
                        "name": node.get("name"),
                        "label": node.get("label"),
                    }
            for link in row["links"] or []:
                if link["id"] in links:
                    continue
                strength = link.get("strength")
                links[link["id"]] = {
                    "id": link["id"],
                    "source": link.get("source"),
                    "target": link.get("target"),
                    "type": link.get("type"),
                    "strength": DEFAULT_STRENGTH if strength is None else strength,
                }

        logger.info("knowledge_graph_retrieved", concept=concept, nodes=len(nodes), links=len(links))
        return {
            "success": True,
            "concept": concept,
            "graph": {"nodes": list(nodes.values()), "links": list(links.values())},
        }

    async def search_memories_by_date(
        self,
        from_: str | None = None,
        to: str | None = None,
        type: str | None = None,
    ) -> dict:
        """Memories created in a date range. A date-only upper bound covers that whole day."""
        end = to
        if end and DATE_ONLY_PATTERN.match(end):
            end = f"{end}T23:59:59.999Z"

        found = await self.graph.memories_between(start=from_, end=end, type=type)
        memories = [_memory_record(m) for m in found]

        logger.info("memories_by_date", start=from_, end=end, count=len(memories))
        return {"success": True, "from": from_, "to": to, "memories": memories, "count": len(memories)}

    async def update_memory_importance(self, id: str, importance: float, reason: str | None = None) -> dict:
        """Set a memory's importance, recording why and when."""
        properties: dict[str, Any] = {
            "importance": importance,
            "importanceUpdatedAt": now_iso(),
        }
        if reason:
            properties["importanceReason"] = reason

        await self.graph.update_memory(id, properties)
        logger.info("memory_importance_updated", id=id, importance=importance, reason=reason)
        return {"success": True, "id": id, "importance": importance, "reason": reason}

    async def summarize_memories(self, type: str | None = None, tag: str | None = None) -> dict:
        """Counts and average importance per memory type, plus a tag count when asked."""
        by_type = await self.graph.summarize_by_type(type)
        by_tag: list[dict] = []
        if tag:
            by_tag = [{"tag": tag, "count": await self.graph.count_tagged(tag)}]

        return {
            "success": True,
            "by_type": by_type,
            "by_tag": by_tag,
            "total": sum(row["count"] for row in by_type),
        }

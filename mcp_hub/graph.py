"""
Neo4j adapter for MCP Hub Server.

Translates entity and relationship operations into parameterized Cypher.
Every operation opens its own session and releases it on every exit path;
entities are never cached. Labels and relationship types are interpolated
as quoted identifiers, all other values are bound parameters.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import structlog
from neo4j import AsyncDriver, AsyncGraphDatabase
from neo4j.exceptions import DriverError, Neo4jError, ServiceUnavailable, SessionExpired
from neo4j.graph import Node, Path, Relationship as GraphRelationship

from .config import Settings
from .models import Entity, Relationship
from .utils import (
    EndpointNotFound,
    EntityNotFound,
    ServiceError,
    ServiceUnreachable,
    now_iso,
    quote_identifier,
)

logger = structlog.get_logger(__name__)

MAX_CONCEPT_DEPTH = 4


def to_jsonable(value: Any) -> Any:
    """Convert driver values (nodes, relationships, paths, temporals) to JSON-safe data."""
    if isinstance(value, Node):
        return {
            "id": value.element_id,
            "labels": sorted(value.labels),
            "properties": {k: to_jsonable(v) for k, v in value.items()},
        }
    if isinstance(value, GraphRelationship):
        return {
            "id": value.element_id,
            "type": value.type,
            "start": value.start_node.element_id if value.start_node is not None else None,
            "end": value.end_node.element_id if value.end_node is not None else None,
            "properties": {k: to_jsonable(v) for k, v in value.items()},
        }
    if isinstance(value, Path):
        return {
            "nodes": [to_jsonable(n) for n in value.nodes],
            "relationships": [to_jsonable(r) for r in value.relationships],
        }
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    # neo4j.time.Date / DateTime / Duration and friends
    if hasattr(value, "iso_format"):
        return value.iso_format()
    return value


def _entity(record: Any, name: str | None = None) -> Entity:
    labels = record.get("labels") or []
    properties = to_jsonable(record["properties"] or {})
    return Entity(
        id=record["id"],
        label=labels[0] if labels else None,
        name=name if name is not None else properties.get("name"),
        properties=properties,
    )


def _depth(depth: Any, maximum: int | None = None) -> int:
    value = max(1, int(depth))
    if maximum is not None:
        value = min(value, maximum)
    return value


class GraphClient:
    """Neo4j access for graph tools and memory operations."""

    def __init__(self, driver: AsyncDriver | None, database: str | None = None):
        self._driver = driver
        self._database = database

    @classmethod
    def from_settings(cls, settings: Settings) -> "GraphClient":
        if not settings.neo4j_enabled:
            logger.info("neo4j_disabled")
            return cls(None)
        driver = AsyncGraphDatabase.driver(
            settings.neo4j_uri, auth=(settings.neo4j_user, settings.neo4j_password)
        )
        logger.info("neo4j_initialized", uri=settings.neo4j_uri)
        return cls(driver, settings.neo4j_database)

    @property
    def enabled(self) -> bool:
        return self._driver is not None

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[Any]:
        if self._driver is None:
            raise ServiceUnreachable("Neo4j is disabled")
        try:
            async with self._driver.session(database=self._database) as session:
                yield session
        except (ServiceUnavailable, SessionExpired) as e:
            raise ServiceUnreachable(f"Neo4j not reachable: {e}") from e
        except (Neo4jError, DriverError) as e:
            raise ServiceError(f"Neo4j error: {e}") from e

    async def check_connection(self) -> bool:
        """Return True when the database answers."""
        if self._driver is None:
            return False
        try:
            await self._driver.verify_connectivity()
            return True
        except (Neo4jError, DriverError, OSError) as e:
            logger.warning("neo4j_connection_check_failed", error=str(e))
            return False

    async def close(self) -> None:
        if self._driver is not None:
            await self._driver.close()
            logger.info("neo4j_closed")

    # ============== Tool operations ==============

    async def create_entity(self, label: str, name: str, properties: dict[str, Any] | None = None) -> dict:
        """Create a node. No uniqueness check: repeated calls create distinct nodes."""
        props = {**(properties or {}), "createdAt": now_iso()}
        query = (
            f"CREATE (e:{quote_identifier(label)} {{name: $name}}) "
            "SET e += $props "
            "RETURN elementId(e) AS id, labels(e) AS labels, properties(e) AS properties"
        )
        async with self._session() as session:
            result = await session.run(query, {"name": name, "props": props})
            record = await result.single()

        entity = _entity(record, name=name)
        logger.info("entity_created", label=label, name=name, id=entity.id)
        return {"success": True, **entity.model_dump()}

    async def update_entity(self, id: str, properties: dict[str, Any]) -> dict:
        """Merge properties into an existing node, stamping updatedAt."""
        props = {**(properties or {}), "updatedAt": now_iso()}
        query = (
            "MATCH (e) WHERE elementId(e) = $id "
            "SET e += $props "
            "RETURN elementId(e) AS id, labels(e) AS labels, properties(e) AS properties"
        )
        async with self._session() as session:
            result = await session.run(query, {"id": id, "props": props})
            record = await result.single()

        if record is None:
            raise EntityNotFound(f"Entity not found: {id}")

        logger.info("entity_updated", id=id)
        return {"success": True, "id": id, "properties": to_jsonable(record["properties"])}

    async def delete_entity(self, id: str, detach: bool = False) -> dict:
        """Delete a node; without detach the store rejects nodes that still have relationships."""
        keyword = "DETACH DELETE" if detach else "DELETE"
        query = f"MATCH (e) WHERE elementId(e) = $id {keyword} e"
        async with self._session() as session:
            result = await session.run(query, {"id": id})
            summary = await result.consume()

        deleted = summary.counters.nodes_deleted > 0
        logger.info("entity_deleted", id=id, detach=detach, deleted=deleted)
        return {"success": True, "id": id, "deleted": deleted}

    async def create_relationship(
        self,
        from_label: str,
        from_name: str,
        to_label: str,
        to_name: str,
        relationship_type: str,
        properties: dict[str, Any] | None = None,
    ) -> dict:
        """Create one directed edge between two entities matched by label and name.

        When several entities share a label and name, the earliest created
        one is used.
        """
        rel_type = relationship_type.upper()
        props = {**(properties or {}), "createdAt": now_iso()}
        query = (
            f"MATCH (a:{quote_identifier(from_label)} {{name: $from_name}}) "
            "WITH a ORDER BY a.createdAt, elementId(a) LIMIT 1 "
            f"MATCH (b:{quote_identifier(to_label)} {{name: $to_name}}) "
            "WITH a, b ORDER BY b.createdAt, elementId(b) LIMIT 1 "
            f"CREATE (a)-[r:{quote_identifier(rel_type)}]->(b) "
            "SET r += $props "
            "RETURN elementId(r) AS id, type(r) AS type, properties(r) AS properties"
        )
        params = {"from_name": from_name, "to_name": to_name, "props": props}
        async with self._session() as session:
            result = await session.run(query, params)
            record = await result.single()

        if record is None:
            raise EndpointNotFound(
                f"One or both entities not found: {from_label}:{from_name} -> {to_label}:{to_name}"
            )

        relationship = Relationship(
            id=record["id"], type=record["type"], properties=to_jsonable(record["properties"])
        )
        logger.info("relationship_created", source=from_name, target=to_name, type=rel_type, id=relationship.id)
        return {
            "success": True,
            "id": relationship.id,
            "from": from_name,
            "to": to_name,
            "type": relationship.type,
            "properties": relationship.properties,
        }

    async def query_graph(self, query: str, params: dict[str, Any] | None = None) -> dict:
        """Run an arbitrary Cypher statement. No sandboxing."""
        async with self._session() as session:
            result = await session.run(query, params or {})
            records = [
                {key: to_jsonable(value) for key, value in record.items()}
                async for record in result
            ]
            summary = await result.consume()

        logger.info("query_executed", query=query[:100], results=len(records))
        return {
            "success": True,
            "records": records,
            "summary": {
                "records_returned": len(records),
                "result_available_after": summary.result_available_after,
                "result_consumed_after": summary.result_consumed_after,
            },
        }

    async def find_entities(
        self, label: str | None = None, name_contains: str | None = None, limit: int = 50
    ) -> dict:
        """Find entities by optional label and name substring."""
        pattern = f"(e:{quote_identifier(label)})" if label else "(e)"
        query = f"MATCH {pattern} "
        params: dict[str, Any] = {"limit": int(limit)}
        if name_contains:
            query += "WHERE e.name CONTAINS $name_contains "
            params["name_contains"] = name_contains
        query += "RETURN elementId(e) AS id, labels(e) AS labels, properties(e) AS properties LIMIT $limit"

        async with self._session() as session:
            result = await session.run(query, params)
            entities = [_entity(record).model_dump() async for record in result]

        logger.info("entities_found", count=len(entities), label=label, name_contains=name_contains)
        return {"success": True, "entities": entities, "count": len(entities)}

    async def get_entity_context(self, label: str, name: str, depth: int = 1) -> dict:
        """Return an entity with every relationship and neighbor within depth hops.

        Neighbors reached through several paths appear once per path.
        """
        hops = _depth(depth)
        query = (
            f"MATCH (e:{quote_identifier(label)} {{name: $name}}) "
            "WITH e ORDER BY e.createdAt, elementId(e) LIMIT 1 "
            f"OPTIONAL MATCH (e)-[r*1..{hops}]-(related) "
            "RETURN elementId(e) AS id, labels(e) AS labels, properties(e) AS properties, "
            "[rel IN coalesce(r, []) | {id: elementId(rel), type: type(rel), properties: properties(rel)}] "
            "AS relationships, "
            "CASE WHEN related IS NULL THEN null ELSE "
            "{id: elementId(related), labels: labels(related), properties: properties(related)} END AS related"
        )
        async with self._session() as session:
            result = await session.run(query, {"name": name})
            records = [record async for record in result]

        if not records:
            raise EntityNotFound(f"Entity not found: {label}:{name}")

        entity = _entity(records[0])
        relationships: list[dict] = []
        related: list[dict] = []
        for record in records:
            for rel in record["relationships"] or []:
                relationships.append(
                    Relationship(id=rel["id"], type=rel["type"], properties=to_jsonable(rel["properties"] or {})).model_dump()
                )
            if record["related"] is not None:
                related.append(_entity(record["related"]).model_dump())

        logger.info("entity_context_retrieved", label=label, name=name, depth=hops, related_count=len(related))
        return {
            "success": True,
            "entity": entity.model_dump(),
            "relationships": relationships,
            "relationship_count": len(relationships),
            "related": related,
        }

    # ============== Memory support ==============

    async def merge_entity(self, label: str, name: str) -> dict:
        """Get or create an entity by label and name."""
        query = (
            f"MERGE (e:{quote_identifier(label)} {{name: $name}}) "
            "ON CREATE SET e.createdAt = $now "
            "RETURN elementId(e) AS id, labels(e) AS labels, properties(e) AS properties"
        )
        async with self._session() as session:
            result = await session.run(query, {"name": name, "now": now_iso()})
            record = await result.single()

        return _entity(record, name=name).model_dump()

    async def search_memories(
        self,
        query: str,
        type: str | None = None,
        tags: list[str] | None = None,
        limit: int = 10,
    ) -> list[dict]:
        """Memory properties whose content contains query, most important first."""
        cypher = (
            "MATCH (m:Memory) "
            "WHERE m.content CONTAINS $query "
            "AND ($type IS NULL OR m.type = $type) "
            "AND ($tags IS NULL OR EXISTS { MATCH (m)-[:TAGGED_WITH]->(t:Tag) WHERE t.name IN $tags }) "
            "RETURN properties(m) AS memory "
            "ORDER BY m.importance DESC "
            "LIMIT $limit"
        )
        params = {"query": query, "type": type, "tags": tags or None, "limit": int(limit)}
        async with self._session() as session:
            result = await session.run(cypher, params)
            return [to_jsonable(record["memory"]) async for record in result]

    async def memories_between(
        self, start: str | None = None, end: str | None = None, type: str | None = None
    ) -> list[dict]:
        """Memory properties created within [start, end], newest first."""
        cypher = (
            "MATCH (m:Memory) "
            "WHERE ($start IS NULL OR m.createdAt >= $start) "
            "AND ($end IS NULL OR m.createdAt <= $end) "
            "AND ($type IS NULL OR m.type = $type) "
            "RETURN properties(m) AS memory "
            "ORDER BY m.createdAt DESC"
        )
        async with self._session() as session:
            result = await session.run(cypher, {"start": start, "end": end, "type": type})
            return [to_jsonable(record["memory"]) async for record in result]

    async def update_memory(self, memory_id: str, properties: dict[str, Any]) -> dict:
        """Update a Memory node matched by its id property or element id."""
        cypher = (
            "MATCH (m:Memory) WHERE m.id = $id OR elementId(m) = $id "
            "SET m += $props "
            "RETURN elementId(m) AS id, labels(m) AS labels, properties(m) AS properties"
        )
        async with self._session() as session:
            result = await session.run(cypher, {"id": memory_id, "props": properties})
            record = await result.single()

        if record is None:
            raise EntityNotFound(f"Memory not found: {memory_id}")
        return _entity(record).model_dump()

    async def summarize_by_type(self, type: str | None = None) -> list[dict]:
        """Per-type memory count and average importance."""
        cypher = (
            "MATCH (m:Memory) "
            "WHERE $type IS NULL OR m.type = $type "
            "RETURN m.type AS type, count(m) AS count, avg(m.importance) AS avg_importance "
            "ORDER BY count DESC"
        )
        async with self._session() as session:
            result = await session.run(cypher, {"type": type})
            return [
                {
                    "type": record["type"],
                    "count": int(record["count"]),
                    "avg_importance": float(record["avg_importance"]) if record["avg_importance"] is not None else None,
                }
                async for record in result
            ]

    async def count_tagged(self, tag: str) -> int:
        """Number of memories tagged with tag."""
        cypher = "MATCH (m:Memory)-[:TAGGED_WITH]->(t:Tag {name: $tag}) RETURN count(DISTINCT m) AS count"
        async with self._session() as session:
            result = await session.run(cypher, {"tag": tag})
            record = await result.single()
        return int(record["count"]) if record is not None else 0

    async def concept_neighbourhood(self, concept: str, depth: int = 2, limit: int = 50) -> list[dict]:
        """Paths of 1..depth hops from a Concept, flattened to plain rows.

        Each row is {center, related, links}; links lists every relationship on
        the path with its endpoints' names and strength.
        """
        hops = _depth(depth, MAX_CONCEPT_DEPTH)
        cypher = (
            f"MATCH p = (c:Concept {{name: $concept}})-[*1..{hops}]-(related) "
            "RETURN {id: elementId(c), name: c.name, label: labels(c)[0]} AS center, "
            "{id: elementId(related), name: related.name, label: labels(related)[0]} AS related, "
            "[rel IN relationships(p) | {id: elementId(rel), type: type(rel), "
            "source: startNode(rel).name, target: endNode(rel).name, strength: rel.strength}] AS links "
            "LIMIT $limit"
        )
        async with self._session() as session:
            result = await session.run(cypher, {"concept": concept, "limit": int(limit)})
            return [
                {"center": record["center"], "related": record["related"], "links": record["links"]}
                async for record in result
            ]

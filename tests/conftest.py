"""
Pytest configuration and fixtures for mcp-hub tests.
"""

import itertools
import json
from pathlib import Path
from types import SimpleNamespace

import httpx
import pytest

from mcp_hub.utils import EndpointNotFound, EntityNotFound, ServiceError, now_iso


@pytest.fixture
def temp_vault(tmp_path: Path):
    """Create a temporary vault with test notes."""
    vault_path = tmp_path / "vault"
    vault_path.mkdir()

    (vault_path / "Projects").mkdir()
    (vault_path / "Journal").mkdir()
    (vault_path / ".obsidian").mkdir()

    # Note 1: front-matter with a tag list
    (vault_path / "Projects" / "Hub.md").write_text("""---
title: "Hub"
tags: ["project", "python"]
---

# Hub

The hub talks to Neo4j and Ollama.
Neo4j stores the graph.
""", encoding="utf-8")

    # Note 2: single tag value
    (vault_path / "Journal" / "2024-01-20.md").write_text("""---
tags: journal
---

Worked on the hub today.
""", encoding="utf-8")

    # Note 3: no front-matter
    (vault_path / "plain.md").write_text("""# Plain

Just markdown, nothing else.
""", encoding="utf-8")

    # Hidden folder content is never listed or searched
    (vault_path / ".obsidian" / "workspace.md").write_text("hub neo4j", encoding="utf-8")

    # Non-markdown files are ignored
    (vault_path / "Projects" / "diagram.png").write_bytes(b"\x89PNG")

    yield vault_path


@pytest.fixture
def note_store(temp_vault):
    """NoteStore rooted at the temp vault."""
    from mcp_hub.notes import NoteStore
    return NoteStore(temp_vault)


# ============== Neo4j driver double ==============

class FakeResult:
    """Stands in for neo4j.AsyncResult: records are plain dicts."""

    def __init__(self, records=None, nodes_deleted=0):
        self._records = list(records or [])
        self.summary = SimpleNamespace(
            counters=SimpleNamespace(nodes_deleted=nodes_deleted),
            result_available_after=1,
            result_consumed_after=2,
        )

    async def single(self):
        return self._records[0] if self._records else None

    async def consume(self):
        return self.summary

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for record in self._records:
            yield record


class FakeSession:
    def __init__(self, driver):
        self._driver = driver
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        self.closed = True
        return False

    async def run(self, query, params=None):
        self._driver.queries.append((query, params or {}))
        outcome = self._driver.outcomes.pop(0) if self._driver.outcomes else FakeResult()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeDriver:
    """Records every query; answers with queued FakeResults or raises queued exceptions."""

    def __init__(self, outcomes=None):
        self.outcomes = list(outcomes or [])
        self.queries: list[tuple[str, dict]] = []
        self.sessions: list[FakeSession] = []
        self.closed = False

    def session(self, database=None):
        session = FakeSession(self)
        self.sessions.append(session)
        return session

    async def verify_connectivity(self):
        return None

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_driver():
    return FakeDriver()


@pytest.fixture
def graph_client(fake_driver):
    from mcp_hub.graph import GraphClient
    return GraphClient(fake_driver)


# ============== In-memory graph double ==============

class InMemoryGraph:
    """Dictionary-backed stand-in for GraphClient with the same semantics."""

    enabled = True

    def __init__(self):
        self.nodes: dict[str, dict] = {}
        self.relationships: list[dict] = []
        self.queries: list[str] = []
        self._ids = itertools.count(1)

    def _new_id(self, prefix: str) -> str:
        return f"{prefix}:{next(self._ids)}"

    def _match(self, label: str, name: str) -> dict | None:
        for node in self.nodes.values():
            if node["label"] == label and node["properties"].get("name") == name:
                return node
        return None

    @staticmethod
    def _wire(node: dict) -> dict:
        return {
            "id": node["id"],
            "label": node["label"],
            "name": node["properties"].get("name"),
            "properties": dict(node["properties"]),
        }

    def relationships_of_type(self, rel_type: str) -> list[dict]:
        return [r for r in self.relationships if r["type"] == rel_type]

    def memories(self) -> list[dict]:
        return [n["properties"] for n in self.nodes.values() if n["label"] == "Memory"]

    async def check_connection(self) -> bool:
        return True

    async def close(self) -> None:
        return None

    async def create_entity(self, label, name, properties=None):
        node = {
            "id": self._new_id("n"),
            "label": label,
            "properties": {**(properties or {}), "name": name, "createdAt": now_iso()},
        }
        self.nodes[node["id"]] = node
        return {"success": True, **self._wire(node)}

    async def update_entity(self, id, properties):
        if id not in self.nodes:
            raise EntityNotFound(f"Entity not found: {id}")
        self.nodes[id]["properties"].update({**properties, "updatedAt": now_iso()})
        return {"success": True, "id": id, "properties": dict(self.nodes[id]["properties"])}

    async def delete_entity(self, id, detach=False):
        if id not in self.nodes:
            return {"success": True, "id": id, "deleted": False}
        attached = [r for r in self.relationships if id in (r["start"], r["end"])]
        if attached and not detach:
            raise ServiceError("Neo4j error: node still has relationships")
        self.relationships = [r for r in self.relationships if r not in attached]
        del self.nodes[id]
        return {"success": True, "id": id, "deleted": True}

    async def create_relationship(self, from_label, from_name, to_label, to_name, relationship_type, properties=None):
        source = self._match(from_label, from_name)
        target = self._match(to_label, to_name)
        if source is None or target is None:
            raise EndpointNotFound(
                f"One or both entities not found: {from_label}:{from_name} -> {to_label}:{to_name}"
            )
        rel = {
            "id": self._new_id("r"),
            "type": relationship_type.upper(),
            "start": source["id"],
            "end": target["id"],
            "properties": {**(properties or {}), "createdAt": now_iso()},
        }
        self.relationships.append(rel)
        return {
            "success": True,
            "id": rel["id"],
            "from": from_name,
            "to": to_name,
            "type": rel["type"],
            "properties": dict(rel["properties"]),
        }

    async def query_graph(self, query, params=None):
        self.queries.append(query)
        return {
            "success": True,
            "records": [],
            "summary": {"records_returned": 0, "result_available_after": 0, "result_consumed_after": 0},
        }

    async def find_entities(self, label=None, name_contains=None, limit=50):
        found = [
            self._wire(n) for n in self.nodes.values()
            if (label is None or n["label"] == label)
            and (not name_contains or name_contains in (n["properties"].get("name") or ""))
        ][:limit]
        return {"success": True, "entities": found, "count": len(found)}

    async def get_entity_context(self, label, name, depth=1):
        node = self._match(label, name)
        if node is None:
            raise EntityNotFound(f"Entity not found: {label}:{name}")
        relationships, related = [], []
        for rel in self.relationships:
            if node["id"] in (rel["start"], rel["end"]):
                other = rel["end"] if rel["start"] == node["id"] else rel["start"]
                relationships.append({"id": rel["id"], "type": rel["type"], "properties": rel["properties"]})
                related.append(self._wire(self.nodes[other]))
        return {
            "success": True,
            "entity": self._wire(node),
            "relationships": relationships,
            "relationship_count": len(relationships),
            "related": related,
        }

    async def merge_entity(self, label, name):
        node = self._match(label, name)
        if node is None:
            return {k: v for k, v in (await self.create_entity(label, name)).items() if k != "success"}
        return self._wire(node)

    def _tags_of(self, memory_node_id: str) -> set[str]:
        return {
            self.nodes[r["end"]]["properties"]["name"]
            for r in self.relationships
            if r["type"] == "TAGGED_WITH" and r["start"] == memory_node_id
        }

    async def search_memories(self, query, type=None, tags=None, limit=10):
        found = []
        for node in self.nodes.values():
            props = node["properties"]
            if node["label"] != "Memory" or query not in props.get("content", ""):
                continue
            if type is not None and props.get("type") != type:
                continue
            if tags and not self._tags_of(node["id"]) & set(tags):
                continue
            found.append(dict(props))
        found.sort(key=lambda p: p.get("importance") or 0, reverse=True)
        return found[:limit]

    async def memories_between(self, start=None, end=None, type=None):
        found = [
            dict(p) for p in self.memories()
            if (start is None or p["createdAt"] >= start)
            and (end is None or p["createdAt"] <= end)
            and (type is None or p.get("type") == type)
        ]
        return sorted(found, key=lambda p: p["createdAt"], reverse=True)

    async def update_memory(self, memory_id, properties):
        for node in self.nodes.values():
            if node["label"] == "Memory" and memory_id in (node["id"], node["properties"].get("id")):
                node["properties"].update(properties)
                return self._wire(node)
        raise EntityNotFound(f"Memory not found: {memory_id}")

    async def summarize_by_type(self, type=None):
        groups: dict[str, list[float]] = {}
        for props in self.memories():
            if type is None or props.get("type") == type:
                groups.setdefault(props.get("type"), []).append(props.get("importance") or 0)
        rows = [
            {"type": t, "count": len(values), "avg_importance": sum(values) / len(values)}
            for t, values in groups.items()
        ]
        return sorted(rows, key=lambda r: r["count"], reverse=True)

    async def count_tagged(self, tag):
        return sum(1 for n in self.nodes.values() if n["label"] == "Memory" and tag in self._tags_of(n["id"]))

    async def concept_neighbourhood(self, concept, depth=2, limit=50):
        center = self._match("Concept", concept)
        if center is None:
            return []
        hops = min(max(1, int(depth)), 4)
        rows: list[dict] = []

        def brief(node):
            return {"id": node["id"], "name": node["properties"].get("name"), "label": node["label"]}

        def walk(node_id, path, visited):
            if len(path) >= hops:
                return
            for rel in self.relationships:
                if rel in path or node_id not in (rel["start"], rel["end"]):
                    continue
                other = rel["end"] if rel["start"] == node_id else rel["start"]
                if other in visited:
                    continue
                new_path = path + [rel]
                rows.append({
                    "center": brief(center),
                    "related": brief(self.nodes[other]),
                    "links": [
                        {
                            "id": r["id"],
                            "type": r["type"],
                            "source": self.nodes[r["start"]]["properties"]["name"],
                            "target": self.nodes[r["end"]]["properties"]["name"],
                            "strength": r["properties"].get("strength"),
                        }
                        for r in new_path
                    ],
                })
                walk(other, new_path, visited | {other})

        walk(center["id"], [], {center["id"]})
        return rows[:limit]


@pytest.fixture
def memory_graph():
    return InMemoryGraph()


@pytest.fixture
def orchestrator(memory_graph, note_store):
    from mcp_hub.memory import MemoryOrchestrator
    return MemoryOrchestrator(memory_graph, note_store)


# ============== Ollama HTTP double ==============

def ollama_handler(request: httpx.Request) -> httpx.Response:
    """Minimal Ollama API: answers every endpoint the adapter uses."""
    path = request.url.path
    if path == "/api/tags":
        return httpx.Response(200, json={"models": [{
            "name": "llama3.2:latest",
            "size": 2019393189,
            "modified_at": "2024-10-01T10:00:00Z",
            "digest": "a80c4f17acd5",
            "details": {"family": "llama"},
        }]})
    body = json.loads(request.content or b"{}")
    if path == "/api/chat":
        return httpx.Response(200, json={"message": {"role": "assistant", "content": "hello"}, "done": True})
    if path == "/api/generate":
        return httpx.Response(200, json={"response": "world", "done": True, "context": [1, 2]})
    if path == "/api/embed":
        return httpx.Response(200, json={"embeddings": [[0.1, 0.2, 0.3]]})
    if path == "/api/show":
        return httpx.Response(200, json={
            "license": "LLAMA 3.2 COMMUNITY LICENSE",
            "modelfile": "FROM llama3.2",
            "parameters": "",
            "template": "{{ .Prompt }}",
        })
    if path == "/api/pull":
        lines = [
            {"status": "pulling manifest"},
            {"status": "downloading", "digest": "sha256:abc", "total": 100, "completed": 50},
            {"status": "success"},
        ]
        return httpx.Response(200, content="\n".join(json.dumps(line) for line in lines) + "\n")
    return httpx.Response(404, json={"error": f"unknown path {path} for {body.get('model')}"})


@pytest.fixture
def ollama_client():
    from mcp_hub.inference import OllamaClient
    return OllamaClient("http://ollama.test:11434", transport=httpx.MockTransport(ollama_handler))


@pytest.fixture
def hub(temp_vault, memory_graph, note_store, ollama_client, orchestrator):
    """Hub wired with in-memory doubles for every backend."""
    from mcp_hub.config import Settings
    from mcp_hub.server import Hub, build_registry

    settings = Settings(vault_path=temp_vault, ollama_host="ollama.test", log_level="DEBUG")
    registry = build_registry(memory_graph, note_store, ollama_client, orchestrator)
    return Hub(
        settings=settings,
        graph=memory_graph,
        notes=note_store,
        ollama=ollama_client,
        memory=orchestrator,
        registry=registry,
    )

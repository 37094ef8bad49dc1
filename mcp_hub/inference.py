"""
Ollama adapter for MCP Hub Server.

Thin HTTP client over the Ollama REST API. Every call opens a short-lived
httpx.AsyncClient with a fixed timeout for its class of operation.
"""

import json
from typing import Any

import httpx
import structlog

from .config import Settings
from .models import PullStatus
from .utils import (
    ModelPullError,
    NoEmbeddingReturned,
    ServiceError,
    ServiceUnreachable,
    UnexpectedResponseShape,
)

logger = structlog.get_logger(__name__)

# Timeouts in seconds
METADATA_TIMEOUT = 30.0
GENERATION_TIMEOUT = 120.0
PULL_TIMEOUT = 600.0

DEFAULT_EMBED_MODEL = "nomic-embed-text"


def _response_text(data: dict) -> str:
    """Text of a chat or completion response, whichever shape it has."""
    message = data.get("message")
    if isinstance(message, dict) and message.get("content") is not None:
        return message["content"]
    if data.get("response") is not None:
        return data["response"]
    raise UnexpectedResponseShape("Unexpected response format from Ollama")


class OllamaClient:
    """Async access to a local Ollama server."""

    def __init__(
        self,
        base_url: str,
        enabled: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.enabled = enabled
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "OllamaClient":
        return cls(settings.ollama_base_url, enabled=settings.ollama_enabled)

    def _client(self, timeout: float) -> httpx.AsyncClient:
        if not self.enabled:
            raise ServiceUnreachable("Ollama is disabled")
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=self._transport,
        )

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            detail = response.json()
        except ValueError:
            detail = response.text
        raise ServiceError(
            f"Ollama API error: {response.status_code} - {detail}",
            status_code=response.status_code,
        )

    async def _post(self, endpoint: str, payload: dict, timeout: float = GENERATION_TIMEOUT) -> dict:
        async with self._client(timeout) as client:
            try:
                response = await client.post(f"/api/{endpoint}", json=payload)
            except httpx.RequestError as e:
                raise ServiceUnreachable(f"Ollama not reachable at {self.base_url}: {e}") from e
        self._raise_for_status(response)
        return response.json()

    async def _get(self, endpoint: str, timeout: float = METADATA_TIMEOUT) -> dict:
        async with self._client(timeout) as client:
            try:
                response = await client.get(f"/api/{endpoint}")
            except httpx.RequestError as e:
                raise ServiceUnreachable(f"Ollama not reachable at {self.base_url}: {e}") from e
        self._raise_for_status(response)
        return response.json()

    async def check_connection(self) -> bool:
        """Return True when the server answers the model listing endpoint."""
        if not self.enabled:
            return False
        try:
            await self._get("tags")
            return True
        except (ServiceUnreachable, ServiceError) as e:
            logger.warning("ollama_connection_check_failed", error=str(e))
            return False

    async def chat(
        self,
        model: str,
        prompt: str,
        system: str | None = None,
        temperature: float = 0.7,
    ) -> dict:
        """Single-turn chat; the system prompt, when given, precedes the user message."""
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        payload = {
            "model": model,
            "messages": messages,
            "stream": False,
            "options": {"temperature": temperature},
        }

        logger.info("ollama_chat_request", model=model, prompt_length=len(prompt))
        data = await self._post("chat", payload)
        text = _response_text(data)
        logger.info("ollama_chat_response", model=model, response_length=len(text))

        return {
            "success": True,
            "model": model,
            "response": text,
            "done": data.get("done"),
            "prompt_eval_count": data.get("prompt_eval_count"),
            "eval_count": data.get("eval_count"),
        }

    async def complete(
        self,
        model: str,
        prompt: str,
        suffix: str | None = None,
        options: dict[str, Any] | None = None,
    ) -> dict:
        """Raw text completion."""
        payload: dict[str, Any] = {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "options": options or {},
        }
        if suffix:
            payload["suffix"] = suffix

        logger.info("ollama_completion_request", model=model, prompt_length=len(prompt))
        data = await self._post("generate", payload)
        text = _response_text(data)
        logger.info("ollama_completion_response", model=model, response_length=len(text))

        return {
            "success": True,
            "model": model,
            "completion": text,
            "done": data.get("done"),
            "context": data.get("context"),
        }

    async def embed(self, text: str, model: str = DEFAULT_EMBED_MODEL) -> dict:
        """Embedding vector for text."""
        logger.info("ollama_embedding_request", model=model, text_length=len(text))
        data = await self._post("embed", {"model": model, "input": text})

        embeddings = data.get("embeddings") or []
        if not embeddings or not embeddings[0]:
            raise NoEmbeddingReturned("No embedding returned from Ollama")

        vector = embeddings[0]
        logger.info("ollama_embedding_generated", model=model, dimension=len(vector))
        return {"success": True, "model": model, "embedding": vector, "dimension": len(vector)}

    async def list_models(self) -> dict:
        """Locally available models."""
        data = await self._get("tags")
        models = [
            {
                "name": m.get("name"),
                "size": m.get("size"),
                "modified": m.get("modified_at"),
                "digest": m.get("digest"),
                "details": m.get("details"),
            }
            for m in data.get("models") or []
        ]
        logger.info("ollama_models_listed", count=len(models))
        return {"success": True, "models": models, "count": len(models)}

    async def show_model_info(self, model: str) -> dict:
        """Modelfile, parameters and template of a model."""
        data = await self._post("show", {"model": model, "name": model}, timeout=METADATA_TIMEOUT)
        logger.info("ollama_model_info", model=model)
        return {
            "success": True,
            "model": model,
            "license": data.get("license"),
            "modelfile": data.get("modelfile"),
            "parameters": data.get("parameters"),
            "template": data.get("template"),
            "details": data.get("details"),
            "model_info": data.get("model_info"),
        }

    async def pull_model(self, model: str, insecure: bool = False) -> dict:
        """Download a model, following the newline-delimited progress stream.

        Lines that are not valid JSON are skipped. A record carrying an
        ``error`` field aborts the pull with ModelPullError.
        """
        status = PullStatus(model=model)
        payload = {"model": model, "insecure": insecure, "stream": True}

        logger.info("ollama_pull_started", model=model)
        async with self._client(PULL_TIMEOUT) as client:
            try:
                async with client.stream("POST", "/api/pull", json=payload) as response:
                    if not response.is_success:
                        await response.aread()
                        self._raise_for_status(response)

                    async for line in response.aiter_lines():
                        if not line.strip():
                            continue
                        try:
                            record = json.loads(line)
                        except json.JSONDecodeError:
                            continue

                        if record.get("error"):
                            raise ModelPullError(f"Pull error: {record['error']}")
                        if record.get("status"):
                            status.status = record["status"]
                        if record.get("digest"):
                            status.digest = record["digest"]
                        if record.get("total"):
                            status.total = record["total"]
                        if "completed" in record:
                            status.completed = record["completed"]

                        logger.debug(
                            "ollama_pull_progress",
                            model=model,
                            status=status.status,
                            completed=status.completed,
                            total=status.total,
                        )
            except httpx.RequestError as e:
                raise ServiceUnreachable(f"Ollama not reachable at {self.base_url}: {e}") from e

        status.status = "success"
        logger.info("ollama_model_pulled", model=model)
        return status.model_dump()

"""Embedding-model service client.

Talks to an Ollama-compatible HTTP API:

- ``POST {url}/api/embed`` with ``{"model": ..., "input": [...]}`` returns
  ``{"embeddings": [[...], ...]}``, one vector per input in input order.
- ``GET {url}/api/tags`` is used as a health check.

Every call has a bounded timeout. Transport errors, non-2xx responses and
malformed payloads all raise ``EmbeddingError``.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

import httpx
import numpy as np
import structlog
from pydantic import BaseModel, ValidationError, field_validator

from vaultgraph.config.models import EmbeddingConfig
from vaultgraph.core.errors import EmbeddingError
from vaultgraph.index.models import Vector

log = structlog.get_logger(__name__)


class Embedder(Protocol):
    """Anything that turns texts into vectors, one per text, in order."""

    model: str

    def embed(self, texts: Sequence[str]) -> list[Vector]: ...


class EmbedResponse(BaseModel):
    """Validated ``/api/embed`` payload."""

    embeddings: list[list[float]]

    @field_validator("embeddings")
    @classmethod
    def non_empty(cls, v: list[list[float]]) -> list[list[float]]:
        if not v:
            raise ValueError("empty embeddings list")
        if any(not vec for vec in v):
            raise ValueError("empty vector in embeddings list")
        return v


class EmbeddingClient:
    """Synchronous httpx client for the embedding service."""

    def __init__(
        self,
        url: str = "http://localhost:11434",
        model: str = "nomic-embed-text",
        timeout: float = 60.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)
        self._owns_client = client is None

    @classmethod
    def from_config(cls, config: EmbeddingConfig) -> EmbeddingClient:
        return cls(url=config.url, model=config.model, timeout=config.timeout_sec)

    def embed(self, texts: Sequence[str]) -> list[Vector]:
        """Embed a list of texts in one call.

        Raises:
            EmbeddingError: On transport failure, non-success status, an
                empty result, or a vector count that differs from ``len(texts)``.
        """
        if not texts:
            return []

        endpoint = f"{self.url}/api/embed"
        try:
            response = self._client.post(
                endpoint,
                json={"model": self.model, "input": list(texts)},
                timeout=self.timeout,
            )
        except httpx.RequestError as e:
            raise EmbeddingError.request_failed(endpoint, str(e) or type(e).__name__) from e

        if not response.is_success:
            raise EmbeddingError.request_failed(
                endpoint, f"HTTP {response.status_code}", status=response.status_code
            )

        try:
            payload = EmbedResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise EmbeddingError.invalid_response(str(e.errors()[0]["msg"]), url=endpoint) from e

        if len(payload.embeddings) != len(texts):
            raise EmbeddingError.invalid_response(
                "vector count does not match input count",
                expected=len(texts),
                actual=len(payload.embeddings),
            )

        log.debug("embed_call_complete", count=len(texts), dim=len(payload.embeddings[0]))
        return [np.asarray(vec, dtype=np.float32) for vec in payload.embeddings]

    def embed_one(self, text: str) -> Vector:
        return self.embed([text])[0]

    def check_health(self) -> bool:
        """True if the service answers its tag listing with a 2xx status."""
        try:
            response = self._client.get(f"{self.url}/api/tags", timeout=min(self.timeout, 5.0))
        except httpx.RequestError as e:
            log.debug("embedding_health_check_failed", url=self.url, error=str(e))
            return False
        return response.is_success

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

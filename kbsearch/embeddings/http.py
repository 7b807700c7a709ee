"""Client for an HTTP embedding service.

Talks to a service exposing ``POST /api/v1/embed`` with the request body
``{"items": [{"text": ...}], "model": ...}`` and the response body
``{"vectors": [[...]], ...}``.
"""

from typing import List, Optional

import httpx
import structlog

from .base import EmbeddingGenerationFailedError, EmbeddingProvider

logger = structlog.get_logger("embeddings.http")


class HttpEmbeddingProvider(EmbeddingProvider):
    """Embeddings from a remote embedding service over HTTP."""

    provider_name = "http"

    def __init__(
        self,
        base_url: str,
        model: str = "default",
        dimensions: int = 384,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self._dimensions = dimensions
        self._owns_client = client is None
        self.http_client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def is_available(self) -> bool:
        return bool(self.base_url)

    def unavailable_reason(self) -> Optional[str]:
        return None if self.is_available() else "embedding service URL not set"

    async def embed(self, text: str) -> List[float]:
        text = self._prepare_text(text)
        try:
            response = await self.http_client.post(
                f"{self.base_url}/api/v1/embed",
                json={
                    "items": [{"text": text}],
                    "model": self.model
                }
            )
            response.raise_for_status()
            vectors = response.json().get("vectors", [])
        except Exception as e:
            logger.error("Embedding service call failed", url=self.base_url, error=str(e))
            raise EmbeddingGenerationFailedError(
                f"Embedding service request failed: {e}",
                {"provider": self.provider_name, "url": self.base_url},
            ) from e

        if not vectors:
            raise EmbeddingGenerationFailedError(
                "Embedding service returned no vectors",
                {"provider": self.provider_name, "url": self.base_url},
            )
        return [float(v) for v in vectors[0]]

    async def close(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

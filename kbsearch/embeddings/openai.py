"""OpenAI embedding provider.

Available only when an API key is configured (explicitly or through
``OPENAI_API_KEY``); without one the engines fall back according to their
degradation mode.
"""

import os
from typing import List, Optional

import structlog
from openai import AsyncOpenAI

from .base import EmbeddingGenerationFailedError, EmbeddingProvider, EmbeddingUnavailableError

logger = structlog.get_logger("embeddings.openai")


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embeddings from the OpenAI API via ``AsyncOpenAI``."""

    provider_name = "openai"

    DEFAULT_MODEL = "text-embedding-3-small"
    DEFAULT_DIMENSIONS = 1536

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        dimensions: int = DEFAULT_DIMENSIONS,
        timeout: float = 30.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        """Configure the provider.

        Parameters
        - api_key: OpenAI API key; falls back to ``OPENAI_API_KEY``
        - model: Embedding model name
        - dimensions: Vector length requested from the model
        - timeout: Seconds to allow per request
        - client: Pre-built client (tests, shared clients)
        """
        self.model = model
        self._dimensions = dimensions
        api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if client is not None:
            self._client: Optional[AsyncOpenAI] = client
        elif api_key:
            self._client = AsyncOpenAI(api_key=api_key, timeout=timeout)
        else:
            self._client = None

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def is_available(self) -> bool:
        return self._client is not None

    def unavailable_reason(self) -> Optional[str]:
        return None if self.is_available() else "OPENAI_API_KEY not set"

    async def embed(self, text: str) -> List[float]:
        if self._client is None:
            raise EmbeddingUnavailableError("OpenAI embedding provider not available", {"provider": self.provider_name})
        text = self._prepare_text(text)

        request = {"model": self.model, "input": text, "encoding_format": "float"}
        # Only the text-embedding-3 family accepts a custom output size
        if self.model.startswith("text-embedding-3"):
            request["dimensions"] = self._dimensions

        try:
            response = await self._client.embeddings.create(**request)
        except Exception as e:
            logger.error("OpenAI embedding request failed", model=self.model, error=str(e))
            raise EmbeddingGenerationFailedError(
                f"OpenAI embedding failed: {e}",
                {"provider": self.provider_name, "model": self.model},
            ) from e

        if not response.data:
            raise EmbeddingGenerationFailedError(
                "No embedding data returned from OpenAI API",
                {"provider": self.provider_name, "model": self.model},
            )
        return list(response.data[0].embedding)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()

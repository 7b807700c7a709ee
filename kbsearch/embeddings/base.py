"""Embedding provider interface.

Engines consume embeddings through this narrow contract so the model and the
transport (OpenAI API, in-house embedding service, local model) can change
without touching search logic. A provider that is not available (no API key,
disabled by configuration) reports why through ``status()``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from kbsearch.common.errors import KnowledgeSearchError


class EmbeddingError(KnowledgeSearchError):
    """Base exception for embedding operations."""
    pass


class EmbeddingUnavailableError(EmbeddingError):
    """Embeddings were required but no provider is available."""
    pass


class EmbeddingGenerationFailedError(EmbeddingError):
    """The provider call failed (transport, auth, empty input, bad response)."""
    pass


@dataclass(frozen=True)
class EmbeddingStatus:
    """Availability snapshot of an embedding provider."""
    available: bool
    provider: str
    model: Optional[str] = None
    dimensions: Optional[int] = None
    reason: Optional[str] = None


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers."""

    provider_name = "abstract"
    model: Optional[str] = None

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Length of the vectors this provider returns."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        pass

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Embed a single text.

        Raises ``EmbeddingGenerationFailedError`` on any provider failure.
        """
        pass

    def unavailable_reason(self) -> Optional[str]:
        return None if self.is_available() else "provider not configured"

    def status(self) -> EmbeddingStatus:
        return EmbeddingStatus(
            available=self.is_available(),
            provider=self.provider_name,
            model=self.model,
            dimensions=self.dimensions,
            reason=self.unavailable_reason(),
        )

    def _prepare_text(self, text: str) -> str:
        """Strip input and reject empty text before any provider call."""
        stripped = (text or "").strip()
        if not stripped:
            raise EmbeddingGenerationFailedError(
                "Text cannot be empty for embedding generation",
                {"provider": self.provider_name},
            )
        return stripped

    async def close(self) -> None:
        pass


class DisabledEmbeddingProvider(EmbeddingProvider):
    """Provider used when embeddings are switched off or not configured."""

    provider_name = "none"

    def __init__(self, reason: str = "embeddings disabled", dimensions: int = 1536):
        self.reason = reason
        self._dimensions = dimensions

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def is_available(self) -> bool:
        return False

    def unavailable_reason(self) -> Optional[str]:
        return self.reason

    async def embed(self, text: str) -> List[float]:
        raise EmbeddingUnavailableError(self.reason, {"provider": self.provider_name})

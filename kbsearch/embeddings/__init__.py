"""Embedding providers consumed by the search engines.

- ``base``: ``EmbeddingProvider`` contract, status type and errors.
- ``openai`` / ``http`` / ``local``: concrete providers.
- ``factory``: build the configured provider from ``KnowledgeSearchConfig``.
"""

from .base import (
    DisabledEmbeddingProvider,
    EmbeddingError,
    EmbeddingGenerationFailedError,
    EmbeddingProvider,
    EmbeddingStatus,
    EmbeddingUnavailableError,
)

__all__ = [
    "DisabledEmbeddingProvider",
    "EmbeddingError",
    "EmbeddingGenerationFailedError",
    "EmbeddingProvider",
    "EmbeddingStatus",
    "EmbeddingUnavailableError",
]

"""Embedding provider factory."""

from enum import Enum

import structlog

from kbsearch.common.config import KnowledgeSearchConfig
from kbsearch.common.errors import ConfigurationError

from .base import DisabledEmbeddingProvider, EmbeddingProvider
from .http import HttpEmbeddingProvider
from .openai import OpenAIEmbeddingProvider

logger = structlog.get_logger("embeddings.factory")


class EmbeddingProviderType(Enum):
    """Supported embedding providers."""
    OPENAI = "openai"
    HTTP = "http"
    LOCAL = "local"
    NONE = "none"


def create_embedding_provider(config: KnowledgeSearchConfig) -> EmbeddingProvider:
    """Create the embedding provider selected by ``kb_embedding_provider``.

    An OpenAI provider without an API key is still returned; it reports
    itself unavailable so engines can apply their degradation mode.
    """
    try:
        provider_type = EmbeddingProviderType(config.kb_embedding_provider)
    except ValueError:
        raise ConfigurationError(f"Unsupported embedding provider: {config.kb_embedding_provider}")

    if provider_type == EmbeddingProviderType.OPENAI:
        provider: EmbeddingProvider = OpenAIEmbeddingProvider(
            api_key=config.openai_api_key(),
            model=config.kb_embedding_model,
            dimensions=config.kb_embedding_dimensions,
            timeout=config.kb_embedding_timeout,
        )
    elif provider_type == EmbeddingProviderType.HTTP:
        provider = HttpEmbeddingProvider(
            base_url=config.kb_embedding_service_url,
            model=config.kb_embedding_model,
            dimensions=config.kb_embedding_dimensions,
            timeout=config.kb_embedding_timeout,
        )
    elif provider_type == EmbeddingProviderType.LOCAL:
        # Imported here so the optional dependency is only needed when selected
        from .local import LocalEmbeddingProvider
        provider = LocalEmbeddingProvider(model=config.kb_embedding_model)
    else:
        provider = DisabledEmbeddingProvider(
            reason="embeddings disabled by configuration",
            dimensions=config.kb_embedding_dimensions,
        )

    status = provider.status()
    logger.info(
        "Embedding provider created",
        provider=status.provider,
        available=status.available,
        model=status.model,
        reason=status.reason
    )
    return provider

"""Wiring for the three knowledge stores.

Builds one ``HybridSearchEngine`` per record type (capabilities, patterns,
policy intents), each on its own collection and codec, sharing a single
embedding provider and metrics collector.

Usage
- ``configure_observability(config)`` once at startup
- ``kb = KnowledgeBase.from_config(config)``; ``await kb.initialize()``
- ``await kb.patterns.search("postgres in production")``
- ``await kb.close()`` on shutdown
"""

import asyncio
from typing import Dict, Optional, TypeVar

import structlog

from kbsearch.codecs.base import Codec
from kbsearch.codecs.capability import CAPABILITY_CODEC, ResourceCapability
from kbsearch.codecs.pattern import PATTERN_CODEC, OrganizationalPattern
from kbsearch.codecs.policy import POLICY_CODEC, PolicyIntent
from kbsearch.common.config import KnowledgeSearchConfig
from kbsearch.common.logging import configure_logging
from kbsearch.common.metrics import MetricsCollector, get_metrics_collector
from kbsearch.common.tracing import configure_tracing
from kbsearch.embeddings.base import EmbeddingProvider
from kbsearch.embeddings.factory import create_embedding_provider
from kbsearch.search.engine import HybridSearchEngine
from kbsearch.vector_store.factory import create_document_store

logger = structlog.get_logger("knowledge")

R = TypeVar("R")


def configure_observability(config: KnowledgeSearchConfig) -> None:
    """Set up logging and, when enabled, tracing from configuration."""
    configure_logging(
        config.kb_service_name,
        log_level=config.kb_log_level,
        log_format=config.kb_log_format,
        env=config.kb_env,
    )
    if config.kb_tracing_enabled:
        configure_tracing(config.kb_service_name, environment=config.kb_env)


def create_engine(
    codec: Codec[R],
    collection: str,
    config: KnowledgeSearchConfig,
    embeddings: Optional[EmbeddingProvider],
    metrics: Optional[MetricsCollector] = None,
) -> HybridSearchEngine[R]:
    """Build an engine for ``codec`` on the configured backend."""
    store = create_document_store(collection, config.store_settings())
    return HybridSearchEngine(
        codec=codec,
        store=store,
        embeddings=embeddings,
        config=config.engine_config(collection),
        metrics=metrics,
    )


class KnowledgeBase:
    """The capability, pattern and policy engines of one deployment."""

    def __init__(
        self,
        capabilities: HybridSearchEngine[ResourceCapability],
        patterns: HybridSearchEngine[OrganizationalPattern],
        policies: HybridSearchEngine[PolicyIntent],
        embeddings: Optional[EmbeddingProvider] = None,
    ):
        self.capabilities = capabilities
        self.patterns = patterns
        self.policies = policies
        self.embeddings = embeddings

    @classmethod
    def from_config(
        cls,
        config: Optional[KnowledgeSearchConfig] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> "KnowledgeBase":
        config = config or KnowledgeSearchConfig()
        metrics = metrics or get_metrics_collector(config.kb_service_name)
        embeddings = create_embedding_provider(config)
        return cls(
            capabilities=create_engine(CAPABILITY_CODEC, config.kb_capabilities_collection, config, embeddings, metrics),
            patterns=create_engine(PATTERN_CODEC, config.kb_patterns_collection, config, embeddings, metrics),
            policies=create_engine(POLICY_CODEC, config.kb_policies_collection, config, embeddings, metrics),
            embeddings=embeddings,
        )

    def engines(self) -> Dict[str, HybridSearchEngine]:
        return {
            "capabilities": self.capabilities,
            "patterns": self.patterns,
            "policies": self.policies,
        }

    async def initialize(self) -> None:
        """Create or validate all three collections."""
        await asyncio.gather(*(engine.initialize() for engine in self.engines().values()))
        logger.info("Knowledge base initialized", collections=[e.collection for e in self.engines().values()])

    async def health_check(self) -> Dict[str, bool]:
        names = list(self.engines())
        results = await asyncio.gather(*(engine.health_check() for engine in self.engines().values()))
        return dict(zip(names, results))

    async def close(self) -> None:
        """Release store connections and the embedding provider."""
        for engine in self.engines().values():
            await engine.document_store.close()
        if self.embeddings is not None:
            await self.embeddings.close()
        logger.info("Knowledge base closed")

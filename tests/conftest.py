"""Shared fixtures: fake embedding provider, stores and engines."""

from typing import Dict, List, Optional

import pytest
import pytest_asyncio
from prometheus_client import CollectorRegistry

from kbsearch.codecs.capability import CAPABILITY_CODEC
from kbsearch.codecs.pattern import PATTERN_CODEC
from kbsearch.common.metrics import MetricsCollector
from kbsearch.embeddings.base import EmbeddingGenerationFailedError, EmbeddingProvider
from kbsearch.search.engine import HybridSearchEngine
from kbsearch.search.types import DegradationMode, EngineConfig
from kbsearch.vector_store.keywords import split_words
from kbsearch.vector_store.memory import InMemoryDocumentStore

FAKE_DIMENSIONS = 64

COLLECTIONS = {"capability": "capabilities", "pattern": "patterns", "policy": "policies"}


class FakeEmbeddingProvider(EmbeddingProvider):
    """Bag-of-words vectors: each distinct word owns one dimension.

    Words get dimensions in order of first use, so texts share a non-zero
    cosine similarity only when they share a word (until the vocabulary
    outgrows the vector size).
    """

    provider_name = "fake"
    model = "bag-of-words"

    def __init__(self, dimensions: int = FAKE_DIMENSIONS, available: bool = True, fail: bool = False):
        self._dimensions = dimensions
        self.available = available
        self.fail = fail
        self.calls: List[str] = []
        self.vocabulary: Dict[str, int] = {}

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def is_available(self) -> bool:
        return self.available

    def unavailable_reason(self) -> Optional[str]:
        return None if self.available else "fake provider switched off"

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail:
            raise EmbeddingGenerationFailedError("fake provider failure", {"provider": self.provider_name})
        vector = [0.0] * self._dimensions
        for word in split_words(text):
            index = self.vocabulary.setdefault(word, len(self.vocabulary) % self._dimensions)
            vector[index] += 1.0
        return vector


@pytest.fixture
def metrics():
    return MetricsCollector("test-service", registry=CollectorRegistry())


@pytest.fixture
def embeddings():
    return FakeEmbeddingProvider()


def make_engine(codec, embeddings, metrics, mode=DegradationMode.GRACEFUL, collection=None, store=None):
    collection = collection or COLLECTIONS[codec.name]
    return HybridSearchEngine(
        codec=codec,
        store=store or InMemoryDocumentStore(collection),
        embeddings=embeddings,
        config=EngineConfig(collection=collection, mode=mode, default_vector_dimension=FAKE_DIMENSIONS),
        metrics=metrics,
    )


@pytest_asyncio.fixture
async def capability_engine(embeddings, metrics):
    engine = make_engine(CAPABILITY_CODEC, embeddings, metrics)
    await engine.initialize()
    return engine


@pytest_asyncio.fixture
async def keyword_capability_engine(metrics):
    """Graceful engine without any embedding provider."""
    engine = make_engine(CAPABILITY_CODEC, None, metrics)
    await engine.initialize()
    return engine


@pytest_asyncio.fixture
async def pattern_engine(embeddings, metrics):
    engine = make_engine(PATTERN_CODEC, embeddings, metrics)
    await engine.initialize()
    return engine


@pytest.fixture
def engine_factory(metrics):
    """Build (uninitialized) engines with the shared metrics collector."""
    def factory(codec, embeddings=None, mode=DegradationMode.GRACEFUL, collection=None, store=None):
        return make_engine(codec, embeddings, metrics, mode=mode, collection=collection, store=store)
    return factory

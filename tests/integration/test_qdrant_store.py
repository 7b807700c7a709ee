"""Integration tests against a running Qdrant server."""

import uuid

import pytest
import pytest_asyncio

from kbsearch.codecs.capability import CAPABILITY_CODEC, ResourceCapability
from kbsearch.common.config import KnowledgeSearchConfig
from kbsearch.search.engine import HybridSearchEngine
from kbsearch.search.types import EngineConfig, MatchType
from kbsearch.vector_store.base import StoredDocument
from kbsearch.vector_store.qdrant import QdrantDocumentStore


@pytest.mark.integration
class TestQdrantIntegration:
    """Test the Qdrant store and an engine on top of it."""

    @pytest_asyncio.fixture
    async def store(self):
        """Create a store on a throwaway collection."""
        config = KnowledgeSearchConfig()
        store = QdrantDocumentStore(
            f"kb_test_{uuid.uuid4().hex[:8]}",
            url=config.kb_qdrant_url,
            api_key=config.kb_qdrant_api_key,
        )
        if not await store.health_check():
            await store.close()
            pytest.skip("Qdrant not available")
        yield store
        await store.client.delete_collection(store.collection)
        await store.close()

    @pytest.mark.asyncio
    async def test_vectorless_documents(self, store):
        """Test documents stored without a vector."""
        await store.initialize_collection(4)
        document_id = str(uuid.uuid4())
        await store.upsert(StoredDocument(id=document_id, vector=None, payload={"searchText": "redis cache"}))

        document = await store.get(document_id)
        assert document.vector is None
        assert await store.search_similar([1.0, 0.0, 0.0, 0.0], limit=5) == []
        assert [r.id for r in await store.search_by_keywords(["redis"], limit=5)] == [document_id]

    @pytest.mark.asyncio
    async def test_engine_round_trip(self, store, embeddings, metrics):
        """Test store, hybrid search and delete through the engine."""
        engine = HybridSearchEngine(
            codec=CAPABILITY_CODEC,
            store=store,
            embeddings=embeddings,
            config=EngineConfig(collection=store.collection, default_vector_dimension=embeddings.dimensions),
            metrics=metrics,
        )
        await engine.initialize()

        await engine.store(ResourceCapability(resource_name="sqls.example.org", capabilities=["postgresql", "database"]))
        await engine.store(ResourceCapability(resource_name="redis.example.org", capabilities=["redis", "cache"]))
        assert await engine.count() == 2

        results = await engine.search("postgresql database")
        assert results[0].record.resource_name == "sqls.example.org"
        assert results[0].match_type == MatchType.HYBRID

        await engine.delete_by_key("sqls.example.org")
        assert await engine.get("sqls.example.org") is None
        assert await engine.count() == 1

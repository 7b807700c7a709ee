"""Integration tests against a running PostgreSQL server with pgvector."""

import uuid

import pytest
import pytest_asyncio

from kbsearch.common.config import KnowledgeSearchConfig
from kbsearch.vector_store.base import DimensionMismatchError, StoreConnectivityError, StoredDocument
from kbsearch.vector_store.pgvector import PgVectorDocumentStore


@pytest.mark.integration
class TestPgVectorIntegration:
    """Test the PgVector store on a throwaway table."""

    @pytest_asyncio.fixture
    async def store(self):
        """Create a store on a throwaway collection."""
        config = KnowledgeSearchConfig()
        store = PgVectorDocumentStore(f"kb_test_{uuid.uuid4().hex[:8]}", dsn=config.kb_vector_db_dsn)
        try:
            await store._ensure_extension()
        except StoreConnectivityError:
            pytest.skip("PostgreSQL with pgvector not available")
        if not await store.health_check():
            await store.close()
            pytest.skip("PostgreSQL with pgvector not available")
        yield store
        await store._execute_query("vector.drop", f"DROP TABLE IF EXISTS {store.table}")
        await store.close()

    @pytest.mark.asyncio
    async def test_vectorless_upsert(self, store):
        """Test a document stored without a vector."""
        await store.initialize_collection(4)
        await store.upsert(StoredDocument(id="plain", vector=None, payload={"searchText": "redis cache"}))

        document = await store.get("plain")
        assert document.vector is None
        assert document.payload == {"searchText": "redis cache"}
        assert [r.id for r in await store.search_by_keywords(["redis"], limit=5)] == ["plain"]

    @pytest.mark.asyncio
    async def test_get_and_scroll_round_trip_payloads(self, store):
        """Test JSONB payloads come back unchanged."""
        await store.initialize_collection(3)
        payload = {
            "resourceName": "sql.example.org",
            "apiVersion": "example.org/v1",
            "providers": ["aws", "gcp"],
            "printerColumns": [{"name": "Ready", "jsonPath": ".status.ready"}],
            "confidence": 0.75,
        }
        await store.upsert(StoredDocument(id="sql", vector=[1.0, 0.0, 0.0], payload=payload))
        await store.upsert(StoredDocument(id="app", vector=[0.0, 1.0, 0.0], payload={"apiVersion": "apps/v1"}))

        document = await store.get("sql")
        assert document.payload == payload
        assert document.vector == pytest.approx([1.0, 0.0, 0.0])
        assert await store.get("missing") is None

        matched = await store.scroll({"apiVersion": "example.org/v1"}, limit=10)
        assert [d.id for d in matched] == ["sql"]
        assert matched[0].payload == payload
        assert sorted(d.id for d in await store.get_all()) == ["app", "sql"]
        assert (await store.collection_info()).count == 2
        assert (await store.collection_info()).vector_dim == 3

    @pytest.mark.asyncio
    async def test_search_similar_skips_null_vectors(self, store):
        """Test similarity search ignores rows without a vector."""
        await store.initialize_collection(3)
        await store.upsert(StoredDocument(id="x", vector=[1.0, 0.0, 0.0], payload={}))
        await store.upsert(StoredDocument(id="y", vector=[0.0, 1.0, 0.0], payload={}))
        await store.upsert(StoredDocument(id="none", vector=None, payload={"searchText": "anything"}))

        results = await store.search_similar([1.0, 0.1, 0.0], limit=10)
        assert [r.id for r in results] == ["x", "y"]
        assert results[0].score > results[1].score
        assert all(0.0 <= r.score <= 1.0 for r in results)

    @pytest.mark.asyncio
    async def test_reinitialize_with_other_dimension(self, store):
        """Test an existing table keeps its declared dimension."""
        await store.initialize_collection(3)
        await store.initialize_collection(3)

        other = PgVectorDocumentStore(store.collection, dsn=store.dsn)
        try:
            with pytest.raises(DimensionMismatchError):
                await other.initialize_collection(4)
        finally:
            await other.close()

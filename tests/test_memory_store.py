"""Tests for the in-memory document store contract."""

import pytest

from kbsearch.vector_store.base import (
    DimensionMismatchError,
    DocumentStore,
    NotInitializedError,
    StoredDocument,
    payload_matches,
)
from kbsearch.vector_store.memory import InMemoryDocumentStore


@pytest.fixture
def store():
    return InMemoryDocumentStore("docs")


@pytest.mark.asyncio
async def test_operations_require_initialization(store):
    assert await store.health_check() is True
    assert await store.collection_exists() is False

    with pytest.raises(NotInitializedError) as exc_info:
        await store.upsert(StoredDocument(id="a", payload={}))
    assert exc_info.value.context["operation"] == "upsert"

    for call in (store.get("a"), store.delete("a"), store.get_all(), store.collection_info(), store.delete_all()):
        with pytest.raises(NotInitializedError):
            await call


@pytest.mark.asyncio
async def test_initialize_is_idempotent_and_checks_dimension(store):
    await store.initialize_collection(3)
    await store.initialize_collection(3)
    assert await store.collection_exists() is True

    with pytest.raises(DimensionMismatchError):
        await store.initialize_collection(4)


@pytest.mark.asyncio
async def test_upsert_rejects_wrong_vector_size(store):
    await store.initialize_collection(3)
    with pytest.raises(DimensionMismatchError):
        await store.upsert(StoredDocument(id="a", vector=[1.0, 0.0], payload={}))
    with pytest.raises(DimensionMismatchError):
        await store.search_similar([1.0], limit=5)


@pytest.mark.asyncio
async def test_upsert_get_delete(store):
    await store.initialize_collection(3)
    await store.upsert(StoredDocument(id="a", vector=[1.0, 0.0, 0.0], payload={"name": "first"}))
    await store.upsert(StoredDocument(id="a", vector=None, payload={"name": "second"}))

    document = await store.get("a")
    assert document.payload == {"name": "second"}
    assert document.vector is None
    assert (await store.collection_info()).count == 1

    await store.delete("a")
    await store.delete("a")
    assert await store.get("a") is None


@pytest.mark.asyncio
async def test_returned_documents_are_copies(store):
    await store.initialize_collection(3)
    await store.upsert(StoredDocument(id="a", payload={"tags": ["x"]}))
    document = await store.get("a")
    document.payload["tags"].append("y")
    assert (await store.get("a")).payload == {"tags": ["x"]}


@pytest.mark.asyncio
async def test_search_similar_skips_vectorless_documents(store):
    await store.initialize_collection(3)
    await store.upsert(StoredDocument(id="x", vector=[1.0, 0.0, 0.0], payload={}))
    await store.upsert(StoredDocument(id="xy", vector=[1.0, 1.0, 0.0], payload={}))
    await store.upsert(StoredDocument(id="none", vector=None, payload={"searchText": "anything"}))
    await store.upsert(StoredDocument(id="opposite", vector=[-1.0, 0.0, 0.0], payload={}))

    results = await store.search_similar([1.0, 0.0, 0.0], limit=10)
    assert [r.id for r in results] == ["x", "xy", "opposite"]
    assert results[0].score == pytest.approx(1.0)
    assert results[1].score == pytest.approx(0.7071, abs=1e-3)
    assert results[2].score == 0.0

    limited = await store.search_similar([1.0, 0.0, 0.0], limit=1)
    assert [r.id for r in limited] == ["x"]
    thresholded = await store.search_similar([1.0, 0.0, 0.0], limit=10, threshold=0.5)
    assert [r.id for r in thresholded] == ["x", "xy"]


@pytest.mark.asyncio
async def test_search_by_keywords_includes_vectorless_documents(store):
    await store.initialize_collection(3)
    await store.upsert(StoredDocument(id="a", vector=None, payload={"searchText": "postgresql database"}))
    await store.upsert(StoredDocument(id="b", vector=[0.0, 1.0, 0.0], payload={"searchText": "redis cache"}))

    results = await store.search_by_keywords(["postgresql"], limit=10)
    assert [r.id for r in results] == ["a"]
    assert results[0].score == 1.0


@pytest.mark.asyncio
async def test_scroll_and_delete_all(store):
    await store.initialize_collection(3)
    await store.upsert(StoredDocument(id="a", payload={"apiVersion": "apps/v1", "providers": ["aws", "gcp"]}))
    await store.upsert(StoredDocument(id="b", payload={"apiVersion": "v1", "providers": ["azure"]}))

    assert [d.id for d in await store.scroll({"apiVersion": "apps/v1"}, limit=10)] == ["a"]
    assert [d.id for d in await store.scroll({"providers": "gcp"}, limit=10)] == ["a"]
    assert [d.id for d in await store.scroll({"apiVersion": ["v1", "apps/v1"]}, limit=10)] == ["a", "b"]
    assert [d.id for d in await store.scroll(None, limit=1)] == ["a"]
    assert len(await store.get_all(limit=1)) == 1

    await store.delete_all()
    assert await store.get_all() == []
    assert (await store.collection_info()).count == 0


@pytest.mark.asyncio
async def test_default_delete_all_deletes_each_document(store):
    await store.initialize_collection(3)
    assert store.is_initialized
    for document_id in ("a", "b", "c"):
        await store.upsert(StoredDocument(id=document_id, payload={}))

    await DocumentStore.delete_all(store)
    assert await store.get_all() == []


def test_payload_matches():
    payload = {"complexity": "low", "providers": ["aws"], "confidence": 0.5}
    assert payload_matches(payload, None)
    assert payload_matches(payload, {})
    assert payload_matches(payload, {"complexity": "low", "providers": ["gcp", "aws"]})
    assert not payload_matches(payload, {"complexity": "high"})
    assert not payload_matches(payload, {"missing": "value"})

"""Generic hybrid (keyword + embedding) search engine.

One ``HybridSearchEngine`` serves one collection and one record type. The
record type is plugged in through a ``Codec`` value; the engine itself knows
nothing about capabilities, patterns or policies.

Write path
- derive the document id from the codec prefix and the natural key
- embed the search text when a provider is available
- upsert ``{id, vector, payload + searchText + hasEmbedding}``

Read path
- tokenize the query with the codec's token filter
- embed the query, then run similarity and keyword retrieval concurrently
- fuse by id, decode, post-filter, threshold, sort, truncate

When embeddings are unavailable or fail, ``DegradationMode.STRICT`` raises and
``DegradationMode.GRACEFUL`` continues keyword-only (searches) or vector-less
(writes), logging a warning and counting the fallback.
"""

import asyncio
from contextlib import contextmanager
from typing import Any, Generic, Iterator, List, Mapping, Optional, Sequence, Tuple, TypeVar

from kbsearch.codecs.base import Codec
from kbsearch.common.errors import KnowledgeSearchError
from kbsearch.common.logging import engine_logger
from kbsearch.common.metrics import MetricsCollector, get_metrics_collector
from kbsearch.embeddings.base import (
    EmbeddingGenerationFailedError,
    EmbeddingProvider,
    EmbeddingUnavailableError,
)
from kbsearch.vector_store.base import DocumentStore, DocumentStoreError, ScoredDocument, StoredDocument
from kbsearch.vector_store.keywords import SEARCH_TEXT_FIELD

from .identity import is_document_id
from .scoring import MergedHit, WeightedHybridFusion
from .tokenize import extract_keywords
from .types import DegradationMode, EngineConfig, SearchMode, SearchOptions, SearchResult

R = TypeVar("R")

HAS_EMBEDDING_FIELD = "hasEmbedding"


class SemanticSearchFailedError(KnowledgeSearchError):
    """Query embedding failed during a strict-mode search."""
    pass


class HybridSearchEngine(Generic[R]):
    """Searchable store of records of one type.

    Parameters
    - codec: Maps records to payloads, ids and search text
    - store: Document store bound to ``config.collection``
    - embeddings: Embedding provider, or ``None`` for keyword-only operation
    - config: Weights, defaults and degradation mode
    - metrics: Metrics collector (defaults to the process-wide one)
    """

    def __init__(
        self,
        codec: Codec[R],
        store: DocumentStore,
        embeddings: Optional[EmbeddingProvider],
        config: EngineConfig,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.codec = codec
        self.document_store = store
        self.embeddings = embeddings
        self.config = config
        self.metrics = metrics or get_metrics_collector()
        self.fusion = WeightedHybridFusion(
            semantic_weight=config.semantic_weight,
            keyword_weight=config.keyword_weight,
            hybrid_bonus=config.hybrid_bonus,
        )
        self.logger = engine_logger(config.collection, codec.name)

    @property
    def collection(self) -> str:
        return self.config.collection

    @property
    def strict(self) -> bool:
        return self.config.mode == DegradationMode.STRICT

    @contextmanager
    def _operation(self, operation: str, **context: Any) -> Iterator[None]:
        """Record metrics for an operation and annotate errors it raises."""
        with self.metrics.track(operation, self.collection):
            try:
                yield
            except KnowledgeSearchError as e:
                e.annotate(operation=operation, collection=self.collection, **context)
                raise

    def _semantic_available(self) -> bool:
        return self.embeddings is not None and self.embeddings.is_available()

    def _unavailable_reason(self) -> str:
        if self.embeddings is None:
            return "no embedding provider configured"
        return self.embeddings.unavailable_reason() or "embedding provider unavailable"

    def _provider_name(self) -> str:
        return self.embeddings.provider_name if self.embeddings is not None else "none"

    def _decode(self, document_id: str, payload: Mapping[str, Any]) -> R:
        record = self.codec.decode(payload)
        record.id = document_id
        return record

    async def initialize(self) -> None:
        """Create or validate the collection.

        The vector size comes from the provider when one is available, else
        from ``default_vector_dimension``.
        """
        if self._semantic_available():
            vector_dim = self.embeddings.dimensions
        else:
            vector_dim = self.config.default_vector_dimension
        with self._operation("initialize", vector_dim=vector_dim):
            await self.document_store.initialize_collection(vector_dim)
        self.logger.info("Engine initialized", vector_dim=vector_dim, semantic=self._semantic_available())

    async def _embed_for_store(self, text: str, key: str) -> Optional[List[float]]:
        if not self._semantic_available():
            if self.strict:
                raise EmbeddingUnavailableError(
                    f"Embeddings required in strict mode: {self._unavailable_reason()}",
                    {"provider": self._provider_name()},
                )
            self.metrics.record_fallback(self.collection, "store")
            return None

        try:
            vector = await self.embeddings.embed(text)
        except Exception as e:
            self.metrics.record_embedding(self._provider_name(), "error")
            if self.strict:
                raise EmbeddingGenerationFailedError(
                    f"Embedding generation failed: {e}",
                    {"provider": self._provider_name()},
                ) from e
            self.logger.warning(
                "Embedding generation failed, storing without vector",
                key=key,
                error=str(e)
            )
            self.metrics.record_fallback(self.collection, "store")
            return None

        self.metrics.record_embedding(self._provider_name(), "success")
        return vector

    async def store(self, record: R) -> str:
        """Insert or overwrite ``record``; returns its document id."""
        key = self.codec.identity(record)
        document_id = self.codec.document_id(key)
        search_text = self.codec.search_text(record)
        payload = self.codec.encode(record)

        with self._operation("store", key=key, document_id=document_id):
            vector = await self._embed_for_store(search_text, key)
            payload[SEARCH_TEXT_FIELD] = search_text
            payload[HAS_EMBEDDING_FIELD] = vector is not None
            await self.document_store.upsert(StoredDocument(id=document_id, vector=vector, payload=payload))

        self.logger.info("Stored record", key=key, document_id=document_id, has_embedding=vector is not None)
        return document_id

    async def get(self, key: str) -> Optional[R]:
        """Fetch by document id or natural key; ``None`` when absent."""
        with self._operation("get", key=key):
            document = None
            if is_document_id(key):
                document = await self.document_store.get(key)
            if document is None:
                derived = self.codec.document_id(key)
                if derived != key:
                    document = await self.document_store.get(derived)
        if document is None:
            return None
        return self._decode(document.id, document.payload)

    async def delete(self, document_id: str) -> None:
        """Delete by document id; absent ids are a no-op."""
        with self._operation("delete", document_id=document_id):
            await self.document_store.delete(document_id)
        self.logger.info("Deleted record", document_id=document_id)

    async def delete_by_key(self, key: str) -> None:
        """Delete by natural key without reading the record first."""
        await self.delete(self.codec.document_id(key))

    async def get_all(self, limit: Optional[int] = None) -> List[R]:
        with self._operation("get_all"):
            documents = await self.document_store.get_all(limit)
        return [self._decode(document.id, document.payload) for document in documents]

    async def count(self) -> int:
        """Number of stored records.

        Uses collection metadata; if that fails, counts ``get_all`` results.
        """
        with self._operation("count"):
            try:
                info = await self.document_store.collection_info()
                return info.count
            except DocumentStoreError as e:
                self.logger.warning(
                    "Collection info failed, counting via get_all",
                    fallback="get_all",
                    error=str(e)
                )
                documents = await self.document_store.get_all()
                return len(documents)

    async def delete_all(self) -> None:
        with self._operation("delete_all"):
            await self.document_store.delete_all()
        self.logger.info("Deleted all records")

    async def query_with_filter(self, filters: Mapping[str, Any], limit: int = 100) -> List[R]:
        """Exact-match payload filtering without any ranking.

        ``filters`` maps payload keys (``apiVersion``, ``complexity``, ...)
        to an accepted value or a list of accepted values.
        """
        with self._operation("query_with_filter"):
            documents = await self.document_store.scroll(dict(filters), limit)
        return [self._decode(document.id, document.payload) for document in documents]

    async def collection_exists(self) -> bool:
        with self._operation("collection_exists"):
            return await self.document_store.collection_exists()

    async def health_check(self) -> bool:
        return await self.document_store.health_check()

    def search_mode(self) -> SearchMode:
        """Whether searches currently combine semantic and keyword retrieval."""
        if self._semantic_available():
            return SearchMode(semantic=True, provider=self._provider_name())
        return SearchMode(
            semantic=False,
            provider=self._provider_name() if self.embeddings is not None else None,
            reason=self._unavailable_reason(),
        )

    async def _embed_query(self, query: str) -> Optional[List[float]]:
        if not self._semantic_available():
            if self.strict:
                raise EmbeddingUnavailableError(
                    f"Semantic search required in strict mode: {self._unavailable_reason()}",
                    {"provider": self._provider_name()},
                )
            self.metrics.record_fallback(self.collection, "search")
            return None

        try:
            vector = await self.embeddings.embed(query)
        except Exception as e:
            self.metrics.record_embedding(self._provider_name(), "error")
            if self.strict:
                raise SemanticSearchFailedError(
                    f"Query embedding failed: {e}",
                    {"provider": self._provider_name()},
                ) from e
            self.logger.warning("Query embedding failed, using keyword search only", error=str(e))
            self.metrics.record_fallback(self.collection, "search")
            return None

        self.metrics.record_embedding(self._provider_name(), "success")
        return vector

    async def _query_both(
        self,
        vector: Sequence[float],
        tokens: Sequence[str],
        fetch_limit: int
    ) -> Tuple[List[ScoredDocument], List[ScoredDocument]]:
        """Run similarity and keyword retrieval concurrently.

        If either fails the other is cancelled before the error propagates.
        """
        if not tokens:
            return await self.document_store.search_similar(vector, fetch_limit), []

        tasks = [
            asyncio.ensure_future(self.document_store.search_similar(vector, fetch_limit)),
            asyncio.ensure_future(self.document_store.search_by_keywords(tokens, fetch_limit)),
        ]
        try:
            semantic, keyword = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                if not task.done():
                    task.cancel()
            raise
        return semantic, keyword

    async def _retrieve(self, query: str, tokens: List[str], limit: int) -> List[MergedHit]:
        fetch_limit = limit * 2
        vector = await self._embed_query(query)

        if vector is None:
            keyword = await self.document_store.search_by_keywords(tokens, fetch_limit) if tokens else []
            return self.fusion.keyword_only(keyword)

        semantic, keyword = await self._query_both(vector, tokens, fetch_limit)
        return self.fusion.fuse_results(semantic, keyword)

    async def search(self, query: str, options: Optional[SearchOptions[R]] = None) -> List[SearchResult[R]]:
        """Ranked records matching ``query``.

        Parameters
        - query: Free text; blank queries return ``[]`` without store calls
        - options: Limit, score threshold and record post-filters

        Returns
        - At most ``limit`` results, best first, none below the threshold
        """
        options = options or SearchOptions()
        limit = options.limit if options.limit is not None else self.config.default_limit
        threshold = (
            options.score_threshold
            if options.score_threshold is not None
            else self.config.default_score_threshold
        )

        if not query or not query.strip() or limit <= 0:
            return []

        tokens = extract_keywords(query, self.codec.token_filter)

        with self._operation("search", query=query):
            hits = await self._retrieve(query, tokens, limit)

        results: List[SearchResult[R]] = []
        for hit in hits:
            record = self._decode(hit.id, hit.payload)
            if not all(check(record) for check in options.filters):
                continue
            if hit.score < threshold:
                continue
            results.append(SearchResult(record=record, score=hit.score, match_type=hit.match_type))

        # Stable sort keeps fusion order among equal scores
        results.sort(key=lambda result: result.score, reverse=True)
        results = results[:limit]

        for result in results:
            self.metrics.record_search_result(self.collection, result.match_type.value)
        self.logger.info(
            "Search completed",
            token_count=len(tokens),
            candidates=len(hits),
            results_count=len(results),
            semantic=self._semantic_available()
        )
        return results

"""Qdrant implementation of the document store.

Documents live in a collection with a single named dense vector
(``dense``, cosine distance). Using a named vector lets documents that were
written without an embedding be stored vector-less; they are reachable by
keyword search and scrolling but never by similarity search.

``searchText`` gets a full-text payload index. Keyword ranking itself is done
client side with ``keywords.rank_by_keywords`` so scores match the other
backends, including partial (substring) matches the index cannot express.
"""

import uuid
from typing import Any, Awaitable, List, Optional, Sequence, TypeVar

import structlog
from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    MatchAny,
    MatchValue,
    PointIdsList,
    PointStruct,
    TextIndexParams,
    TextIndexType,
    TokenizerType,
    VectorParams,
)

from kbsearch.common.errors import KnowledgeSearchError
from kbsearch.common.tracing import trace_operation

from .base import (
    CollectionInfo,
    DocumentStore,
    PayloadFilters,
    ScoredDocument,
    StoredDocument,
    StoreConnectivityError,
)
from .keywords import SEARCH_TEXT_FIELD, rank_by_keywords

logger = structlog.get_logger("vector_store.qdrant")

T = TypeVar("T")

DENSE_VECTOR = "dense"
SCROLL_PAGE_SIZE = 256


def _is_point_id(value: str) -> bool:
    try:
        uuid.UUID(value)
    except (ValueError, AttributeError, TypeError):
        return False
    return True


def _build_filter(filters: Optional[PayloadFilters]) -> Optional[Filter]:
    """Translate exact-match filters into a Qdrant ``Filter``."""
    if not filters:
        return None
    conditions = []
    for key, value in filters.items():
        if isinstance(value, (list, tuple, set, frozenset)):
            conditions.append(FieldCondition(key=key, match=MatchAny(any=list(value))))
        else:
            conditions.append(FieldCondition(key=key, match=MatchValue(value=value)))
    return Filter(must=conditions)


class QdrantDocumentStore(DocumentStore):
    """Qdrant-backed implementation of ``DocumentStore``."""

    backend = "qdrant"

    def __init__(
        self,
        collection: str,
        url: str = "http://localhost:6333",
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[AsyncQdrantClient] = None,
    ):
        """Configure a Qdrant-backed store.

        Parameters
        - collection: Qdrant collection name
        - url: Qdrant HTTP endpoint
        - api_key: Optional API key (Qdrant Cloud)
        - timeout: Seconds to allow per request
        - client: Pre-built client; the store then does not own it
        """
        super().__init__(collection)
        self.url = url
        self._owns_client = client is None
        self.client = client or AsyncQdrantClient(url=url, api_key=api_key, timeout=int(timeout))

    async def _run(self, operation: str, call: Awaitable[T], **attributes: Any) -> T:
        """Await a client call inside a span, wrapping backend failures."""
        with trace_operation(operation, collection=self.collection, backend=self.backend, **attributes):
            try:
                return await call
            except KnowledgeSearchError:
                raise
            except Exception as e:
                logger.error(
                    "Qdrant operation failed",
                    operation=operation,
                    collection=self.collection,
                    error=str(e)
                )
                raise StoreConnectivityError(
                    f"Qdrant {operation} failed: {e}",
                    {"collection": self.collection, "operation": operation, "backend": self.backend},
                ) from e

    @staticmethod
    def _dense_size(info: Any) -> Optional[int]:
        vectors = info.config.params.vectors
        if isinstance(vectors, dict):
            params = vectors.get(DENSE_VECTOR)
            return params.size if params is not None else None
        return getattr(vectors, "size", None)

    @staticmethod
    def _dense_vector(raw: Any) -> Optional[List[float]]:
        if isinstance(raw, dict):
            vector = raw.get(DENSE_VECTOR)
            return list(vector) if vector is not None else None
        if raw:
            return list(raw)
        return None

    def _to_document(self, point: Any) -> StoredDocument:
        return StoredDocument(
            id=str(point.id),
            vector=self._dense_vector(point.vector),
            payload=dict(point.payload or {}),
        )

    async def collection_exists(self) -> bool:
        return await self._run("vector.collection_exists", self.client.collection_exists(self.collection))

    async def initialize_collection(self, vector_dim: int) -> None:
        if await self.collection_exists():
            info = await self._run("vector.collection_info", self.client.get_collection(self.collection))
            self._check_existing_dimension(self._dense_size(info), vector_dim)
        else:
            await self._run(
                "vector.create_collection",
                self.client.create_collection(
                    collection_name=self.collection,
                    vectors_config={DENSE_VECTOR: VectorParams(size=vector_dim, distance=Distance.COSINE)},
                ),
                vector_dim=vector_dim,
            )
            await self._run(
                "vector.create_index",
                self.client.create_payload_index(
                    collection_name=self.collection,
                    field_name=SEARCH_TEXT_FIELD,
                    field_schema=TextIndexParams(
                        type=TextIndexType.TEXT,
                        tokenizer=TokenizerType.WORD,
                        lowercase=True,
                    ),
                ),
            )
            logger.info("Created Qdrant collection", collection=self.collection, vector_dim=vector_dim)
        self._vector_dim = vector_dim

    async def upsert(self, document: StoredDocument) -> None:
        self._require_initialized("upsert")
        self._check_vector(document.vector, "upsert")
        vector = {DENSE_VECTOR: list(document.vector)} if document.vector is not None else {}
        await self._run(
            "vector.upsert",
            self.client.upsert(
                collection_name=self.collection,
                points=[PointStruct(id=document.id, vector=vector, payload=document.payload)],
                wait=True,
            ),
            document_id=document.id,
        )

    async def get(self, document_id: str) -> Optional[StoredDocument]:
        self._require_initialized("get")
        if not _is_point_id(document_id):
            return None
        points = await self._run(
            "vector.retrieve",
            self.client.retrieve(
                collection_name=self.collection,
                ids=[document_id],
                with_payload=True,
                with_vectors=True,
            ),
            document_id=document_id,
        )
        return self._to_document(points[0]) if points else None

    async def delete(self, document_id: str) -> None:
        self._require_initialized("delete")
        if not _is_point_id(document_id):
            return
        await self._run(
            "vector.delete",
            self.client.delete(
                collection_name=self.collection,
                points_selector=PointIdsList(points=[document_id]),
                wait=True,
            ),
            document_id=document_id,
        )

    async def delete_all(self) -> None:
        self._require_initialized("delete_all")
        # An empty ``must`` matches every point
        await self._run(
            "vector.delete_all",
            self.client.delete(
                collection_name=self.collection,
                points_selector=FilterSelector(filter=Filter(must=[])),
                wait=True,
            ),
        )

    async def _scroll_pages(
        self,
        scroll_filter: Optional[Filter],
        limit: Optional[int],
        with_vectors: bool
    ) -> List[StoredDocument]:
        documents: List[StoredDocument] = []
        offset = None
        while limit is None or len(documents) < limit:
            page_size = SCROLL_PAGE_SIZE if limit is None else min(SCROLL_PAGE_SIZE, limit - len(documents))
            points, offset = await self._run(
                "vector.scroll",
                self.client.scroll(
                    collection_name=self.collection,
                    scroll_filter=scroll_filter,
                    limit=page_size,
                    offset=offset,
                    with_payload=True,
                    with_vectors=with_vectors,
                ),
            )
            documents.extend(self._to_document(point) for point in points)
            if offset is None:
                break
        return documents

    async def get_all(self, limit: Optional[int] = None) -> List[StoredDocument]:
        self._require_initialized("get_all")
        return await self._scroll_pages(None, limit, with_vectors=True)

    async def scroll(self, filters: Optional[PayloadFilters], limit: int) -> List[StoredDocument]:
        self._require_initialized("scroll")
        return await self._scroll_pages(_build_filter(filters), limit, with_vectors=True)

    async def search_similar(
        self,
        vector: Sequence[float],
        limit: int,
        threshold: Optional[float] = None
    ) -> List[ScoredDocument]:
        self._require_initialized("search_similar")
        self._check_vector(vector, "search_similar")
        response = await self._run(
            "vector.search",
            self.client.query_points(
                collection_name=self.collection,
                query=list(vector),
                using=DENSE_VECTOR,
                limit=limit,
                score_threshold=threshold,
                with_payload=True,
                with_vectors=False,
            ),
            limit=limit,
        )
        return [
            ScoredDocument(
                id=str(point.id),
                score=min(1.0, max(0.0, float(point.score))),
                payload=dict(point.payload or {}),
            )
            for point in response.points
        ]

    async def search_by_keywords(
        self,
        tokens: Sequence[str],
        limit: int,
        threshold: Optional[float] = None
    ) -> List[ScoredDocument]:
        self._require_initialized("search_by_keywords")
        with trace_operation(
            "vector.search_keywords",
            collection=self.collection,
            backend=self.backend,
            keyword_count=len(tokens),
        ):
            documents = await self._scroll_pages(None, None, with_vectors=False)
            return rank_by_keywords(
                ((document.id, document.payload) for document in documents),
                tokens,
                limit,
                threshold,
            )

    async def collection_info(self) -> CollectionInfo:
        self._require_initialized("collection_info")
        info = await self._run("vector.collection_info", self.client.get_collection(self.collection))
        count = info.points_count
        if count is None:
            result = await self._run("vector.count", self.client.count(self.collection, exact=True))
            count = result.count
        return CollectionInfo(count=count, vector_dim=self._dense_size(info))

    async def health_check(self) -> bool:
        try:
            await self._run("vector.health_check", self.client.get_collections())
            return True
        except StoreConnectivityError:
            return False

    async def close(self) -> None:
        if self._owns_client:
            await self.client.close()
            logger.info("Closed Qdrant client", collection=self.collection)

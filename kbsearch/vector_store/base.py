"""Base document store interface.

Defines the abstract contract the search engine depends on, independent of
the backing implementation (Qdrant, PgVector, in-memory).

All methods are asynchronous. A document is an id, an optional dense vector
and a JSON-compatible payload; documents written without a vector are still
reachable through keyword search, scrolling and direct lookup.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from kbsearch.common.errors import KnowledgeSearchError

# Filter values: a single accepted value or a list of accepted values
PayloadFilters = Mapping[str, Any]


@dataclass
class StoredDocument:
    """A document as written to and read from a store."""
    id: str
    vector: Optional[List[float]] = None
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ScoredDocument:
    """A search hit; ``score`` is in ``[0, 1]``, higher is better."""
    id: str
    score: float
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CollectionInfo:
    """Collection metadata reported by the backend."""
    count: int
    vector_dim: Optional[int] = None


class DocumentStoreError(KnowledgeSearchError):
    """Base exception for document store operations."""
    pass


class NotInitializedError(DocumentStoreError):
    """Store used before ``initialize_collection`` succeeded."""
    pass


class DimensionMismatchError(DocumentStoreError):
    """Collection or vector size does not match what the caller expects."""
    pass


class StoreConnectivityError(DocumentStoreError):
    """Backend I/O failure."""
    pass


def _accepted_values(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def payload_matches(payload: Mapping[str, Any], filters: Optional[PayloadFilters]) -> bool:
    """Exact-match filtering shared by the stores that filter client side.

    Each filter key must match. A list-valued filter accepts any of its
    values; a list-valued payload field matches when any element is accepted.
    """
    if not filters:
        return True
    for key, expected in filters.items():
        accepted = _accepted_values(expected)
        actual = payload.get(key)
        if isinstance(actual, list):
            if not any(item in accepted for item in actual):
                return False
        elif actual not in accepted:
            return False
    return True


class DocumentStore(ABC):
    """Abstract base class for document stores bound to one collection.

    Implementations must make ``upsert`` idempotent per id and report
    similarity in ``[0, 1]``. Only ``initialize_collection``,
    ``health_check``, ``collection_exists`` and ``close`` may be called before
    the collection has been initialized.
    """

    backend = "abstract"

    def __init__(self, collection: str):
        self.collection = collection
        self._vector_dim: Optional[int] = None

    @property
    def is_initialized(self) -> bool:
        return self._vector_dim is not None

    @property
    def vector_dim(self) -> Optional[int]:
        return self._vector_dim

    def _require_initialized(self, operation: str) -> None:
        if not self.is_initialized:
            raise NotInitializedError(
                "Collection has not been initialized",
                {"collection": self.collection, "operation": operation, "backend": self.backend},
            )

    def _check_vector(self, vector: Optional[Sequence[float]], operation: str) -> None:
        if vector is None:
            return
        if len(vector) != self._vector_dim:
            raise DimensionMismatchError(
                f"Expected vector dimension {self._vector_dim}, got {len(vector)}",
                {"collection": self.collection, "operation": operation},
            )

    def _check_existing_dimension(self, existing: Optional[int], requested: int) -> None:
        if existing is not None and existing != requested:
            raise DimensionMismatchError(
                f"Collection exists with dimension {existing}, requested {requested}",
                {"collection": self.collection, "operation": "initialize_collection"},
            )

    @abstractmethod
    async def initialize_collection(self, vector_dim: int) -> None:
        """Create the collection if missing; idempotent for the same size.

        Raises ``DimensionMismatchError`` when it exists with another size.
        """
        pass

    @abstractmethod
    async def upsert(self, document: StoredDocument) -> None:
        """Insert or replace a document by id."""
        pass

    @abstractmethod
    async def get(self, document_id: str) -> Optional[StoredDocument]:
        """Get a document, or ``None`` when absent."""
        pass

    @abstractmethod
    async def delete(self, document_id: str) -> None:
        """Delete a document; deleting an absent id is a no-op."""
        pass

    @abstractmethod
    async def get_all(self, limit: Optional[int] = None) -> List[StoredDocument]:
        """Return every document (up to ``limit``)."""
        pass

    @abstractmethod
    async def search_similar(
        self,
        vector: Sequence[float],
        limit: int,
        threshold: Optional[float] = None
    ) -> List[ScoredDocument]:
        """Nearest documents by cosine similarity, best first.

        Documents stored without a vector are never returned.
        """
        pass

    @abstractmethod
    async def search_by_keywords(
        self,
        tokens: Sequence[str],
        limit: int,
        threshold: Optional[float] = None
    ) -> List[ScoredDocument]:
        """Documents whose ``searchText`` matches the tokens, best first.

        Scores follow ``kbsearch.vector_store.keywords.keyword_score``.
        """
        pass

    @abstractmethod
    async def collection_info(self) -> CollectionInfo:
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the backend is reachable."""
        pass

    @abstractmethod
    async def scroll(self, filters: Optional[PayloadFilters], limit: int) -> List[StoredDocument]:
        """Documents whose payload matches ``filters`` exactly (see ``payload_matches``)."""
        pass

    @abstractmethod
    async def collection_exists(self) -> bool:
        pass

    async def delete_all(self) -> None:
        """Remove every document in the collection.

        Backends with a bulk primitive override this; the default deletes
        document by document.
        """
        self._require_initialized("delete_all")
        documents = await self.get_all()
        for document in documents:
            await self.delete(document.id)

    async def close(self) -> None:
        """Release backend resources."""
        pass

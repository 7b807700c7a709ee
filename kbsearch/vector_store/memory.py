"""In-process document store.

Keeps documents in a dict and ranks vectors with numpy cosine similarity.
Suitable for tests, local development and small embedded deployments;
contents are lost when the process exits.
"""

import copy
from typing import Dict, List, Optional, Sequence

import numpy as np
import structlog

from .base import (
    CollectionInfo,
    DocumentStore,
    PayloadFilters,
    ScoredDocument,
    StoredDocument,
    payload_matches,
)
from .keywords import rank_by_keywords

logger = structlog.get_logger("vector_store.memory")


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed implementation of ``DocumentStore``."""

    backend = "memory"

    def __init__(self, collection: str):
        super().__init__(collection)
        self._documents: Dict[str, StoredDocument] = {}
        self._exists = False

    async def initialize_collection(self, vector_dim: int) -> None:
        if self._exists:
            self._check_existing_dimension(self._vector_dim, vector_dim)
        else:
            self._exists = True
            logger.info("Created collection", collection=self.collection, vector_dim=vector_dim)
        self._vector_dim = vector_dim

    async def upsert(self, document: StoredDocument) -> None:
        self._require_initialized("upsert")
        self._check_vector(document.vector, "upsert")
        self._documents[document.id] = StoredDocument(
            id=document.id,
            vector=list(document.vector) if document.vector is not None else None,
            payload=copy.deepcopy(document.payload),
        )

    async def get(self, document_id: str) -> Optional[StoredDocument]:
        self._require_initialized("get")
        document = self._documents.get(document_id)
        return copy.deepcopy(document) if document is not None else None

    async def delete(self, document_id: str) -> None:
        self._require_initialized("delete")
        self._documents.pop(document_id, None)

    async def delete_all(self) -> None:
        self._require_initialized("delete_all")
        self._documents.clear()

    async def get_all(self, limit: Optional[int] = None) -> List[StoredDocument]:
        self._require_initialized("get_all")
        documents = [copy.deepcopy(document) for document in self._documents.values()]
        return documents if limit is None else documents[:limit]

    async def search_similar(
        self,
        vector: Sequence[float],
        limit: int,
        threshold: Optional[float] = None
    ) -> List[ScoredDocument]:
        self._require_initialized("search_similar")
        self._check_vector(vector, "search_similar")

        with_vectors = [document for document in self._documents.values() if document.vector is not None]
        if not with_vectors:
            return []

        query = np.asarray(vector, dtype=np.float32)
        matrix = np.asarray([document.vector for document in with_vectors], dtype=np.float32)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        with np.errstate(divide="ignore", invalid="ignore"):
            similarities = np.where(norms > 0, matrix @ query / norms, 0.0)

        results: List[ScoredDocument] = []
        # Stable ordering keeps insertion order among equal similarities
        for index in np.argsort(-similarities, kind="stable"):
            score = float(np.clip(similarities[index], 0.0, 1.0))
            if threshold is not None and score < threshold:
                continue
            document = with_vectors[index]
            results.append(ScoredDocument(id=document.id, score=score, payload=copy.deepcopy(document.payload)))
            if len(results) >= limit:
                break
        return results

    async def search_by_keywords(
        self,
        tokens: Sequence[str],
        limit: int,
        threshold: Optional[float] = None
    ) -> List[ScoredDocument]:
        self._require_initialized("search_by_keywords")
        candidates = [(document.id, copy.deepcopy(document.payload)) for document in self._documents.values()]
        return rank_by_keywords(candidates, tokens, limit, threshold)

    async def scroll(self, filters: Optional[PayloadFilters], limit: int) -> List[StoredDocument]:
        self._require_initialized("scroll")
        matches = [
            copy.deepcopy(document)
            for document in self._documents.values()
            if payload_matches(document.payload, filters)
        ]
        return matches[:limit]

    async def collection_info(self) -> CollectionInfo:
        self._require_initialized("collection_info")
        return CollectionInfo(count=len(self._documents), vector_dim=self._vector_dim)

    async def collection_exists(self) -> bool:
        return self._exists

    async def health_check(self) -> bool:
        return True

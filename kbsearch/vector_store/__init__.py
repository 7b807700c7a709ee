"""Document store adapters and utilities.

Primary components:
- ``base``: abstract ``DocumentStore`` interface, document types and errors.
- ``keywords``: keyword scoring shared by every backend.
- ``memory``: in-process implementation (tests, local development).
- ``qdrant``: Qdrant implementation with vector-less document support.
- ``pgvector``: PostgreSQL/pgvector implementation of the interface.
- ``factory``: helpers to construct a store from typed config.

Guidance:
- Prefer constructing via ``factory.create_document_store`` so engines remain
  decoupled from specific backends.
"""

from .base import (
    CollectionInfo,
    DimensionMismatchError,
    DocumentStore,
    DocumentStoreError,
    NotInitializedError,
    ScoredDocument,
    StoreConnectivityError,
    StoredDocument,
)

__all__ = [
    "CollectionInfo",
    "DimensionMismatchError",
    "DocumentStore",
    "DocumentStoreError",
    "NotInitializedError",
    "ScoredDocument",
    "StoreConnectivityError",
    "StoredDocument",
]

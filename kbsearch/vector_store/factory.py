"""Document store factory for creating different implementations.

Centralizes creation of concrete ``DocumentStore`` backends so engines don't
depend on implementation details. New stores can be added without changing
call sites.
"""

from enum import Enum
from typing import Any, Dict

import structlog

from kbsearch.common.errors import ConfigurationError

from .base import DocumentStore
from .memory import InMemoryDocumentStore
from .pgvector import PgVectorDocumentStore
from .qdrant import QdrantDocumentStore

logger = structlog.get_logger("vector_store.factory")


class DocumentStoreType(Enum):
    """Supported document store types."""
    QDRANT = "qdrant"
    PGVECTOR = "pgvector"
    MEMORY = "memory"


class DocumentStoreFactory:
    """Factory for creating document store instances."""

    @staticmethod
    def create(
        store_type: DocumentStoreType,
        collection: str,
        config: Dict[str, Any]
    ) -> DocumentStore:
        """Create a document store bound to ``collection``.

        Parameters
        - store_type: A ``DocumentStoreType`` enum value
        - collection: Collection (or table) the store reads and writes
        - config: Backend-specific parameters (e.g. ``url`` for Qdrant)
        """
        if store_type == DocumentStoreType.QDRANT:
            return QdrantDocumentStore(
                collection=collection,
                url=config.get("url", "http://localhost:6333"),
                api_key=config.get("api_key"),
                timeout=config.get("timeout", 10.0),
            )

        elif store_type == DocumentStoreType.PGVECTOR:
            dsn = config.get("dsn")
            if not dsn:
                raise ConfigurationError("PgVector requires 'dsn' in config", {"collection": collection})

            return PgVectorDocumentStore(
                collection=collection,
                dsn=dsn,
                pool_size=config.get("pool_size", 10),
                max_queries=config.get("max_queries", 50000),
                command_timeout=config.get("command_timeout", 60),
            )

        elif store_type == DocumentStoreType.MEMORY:
            return InMemoryDocumentStore(collection)

        else:
            raise ConfigurationError(f"Unsupported document store type: {store_type}")


def create_document_store(collection: str, config: Dict[str, Any]) -> DocumentStore:
    """Create a document store from a configuration dictionary.

    Expects a ``type`` key (``qdrant``, ``pgvector`` or ``memory``) and any
    implementation-specific fields, as produced by
    ``KnowledgeSearchConfig.store_settings()``.
    """
    store_type_str = config.get("type", "qdrant")

    try:
        store_type = DocumentStoreType(store_type_str)
    except ValueError:
        raise ConfigurationError(
            f"Unsupported document store type: {store_type_str}",
            {"collection": collection},
        )

    logger.debug("Creating document store", backend=store_type.value, collection=collection)
    return DocumentStoreFactory.create(store_type, collection, config)

"""PgVector implementation of the document store.

Each collection is a table holding the document id, a nullable
``vector(n)`` column and a JSONB payload. Cosine similarity is computed with
the ``<=>`` operator and converted to a ``similarity`` score in ``[0, 1]``.
Rows with a NULL vector are skipped by similarity search but remain
reachable through keyword search, scrolling and direct lookup.

Connection management
- A shared asyncpg pool is created on demand and reused across calls
- Queries are funneled through ``_execute_query`` for uniform error handling
"""

import json
import re
from typing import Any, List, Optional, Sequence

import asyncpg
import numpy as np
import structlog
from asyncpg import Connection, Pool
from pgvector.asyncpg import register_vector

from kbsearch.common.errors import KnowledgeSearchError
from kbsearch.common.tracing import trace_operation

from .base import (
    CollectionInfo,
    DocumentStore,
    PayloadFilters,
    ScoredDocument,
    StoredDocument,
    StoreConnectivityError,
    payload_matches,
)
from .keywords import rank_by_keywords

logger = structlog.get_logger("vector_store.pgvector")


def table_name_for(collection: str) -> str:
    """Map a collection name onto a safe, unquoted table identifier."""
    return "kb_" + re.sub(r"[^0-9a-z_]", "_", collection.lower())


class PgVectorDocumentStore(DocumentStore):
    """PgVector-backed implementation of ``DocumentStore``."""

    backend = "pgvector"

    def __init__(
        self,
        collection: str,
        dsn: str,
        pool_size: int = 10,
        max_queries: int = 50000,
        command_timeout: int = 60,
    ):
        """Configure a PgVector-backed store.

        Parameters
        - collection: Logical collection; stored in table ``kb_<collection>``
        - dsn: PostgreSQL DSN including database and credentials
        - pool_size: Max size of asyncpg connection pool
        - max_queries: Queries per connection before recycling
        - command_timeout: Seconds to allow per DB command
        """
        super().__init__(collection)
        self.dsn = dsn
        self.pool_size = pool_size
        self.max_queries = max_queries
        self.command_timeout = command_timeout
        self.table = table_name_for(collection)
        self._pool: Optional[Pool] = None

    async def _init_connection(self, conn: Connection) -> None:
        """Register vector and JSONB codecs for asyncpg connections.

        The ``vector`` type must already exist; see ``_ensure_extension``.
        """
        await register_vector(conn)
        await conn.set_type_codec(
            "jsonb",
            encoder=json.dumps,
            decoder=json.loads,
            schema="pg_catalog",
        )

    async def _get_pool(self) -> Pool:
        """Get or create connection pool.

        Lazily initializes an asyncpg pool so callers don't pay startup cost
        unless/until they make a call that requires the database.
        """
        if self._pool is None:
            try:
                self._pool = await asyncpg.create_pool(
                    self.dsn,
                    min_size=1,
                    max_size=self.pool_size,
                    max_queries=self.max_queries,
                    command_timeout=self.command_timeout,
                    init=self._init_connection,
                )
                logger.info("Created PgVector connection pool", pool_size=self.pool_size)
            except Exception as e:
                logger.error("Failed to create PgVector connection pool", error=str(e))
                raise StoreConnectivityError(
                    f"Failed to create connection pool: {e}",
                    {"collection": self.collection, "backend": self.backend},
                ) from e

        return self._pool

    async def _execute_query(
        self,
        operation: str,
        query: str,
        *args: Any,
        fetch: bool = False,
        fetch_one: bool = False,
        fetch_val: bool = False
    ) -> Any:
        """Execute a query with tracing and error handling.

        The ``fetch``/``fetch_one``/``fetch_val`` flags control how results
        are retrieved. All failures are wrapped in ``StoreConnectivityError``.
        """
        with trace_operation(operation, collection=self.collection, backend=self.backend):
            try:
                pool = await self._get_pool()
                async with pool.acquire() as conn:
                    if fetch_val:
                        return await conn.fetchval(query, *args)
                    if fetch_one:
                        return await conn.fetchrow(query, *args)
                    if fetch:
                        return await conn.fetch(query, *args)
                    return await conn.execute(query, *args)
            except KnowledgeSearchError:
                raise
            except Exception as e:
                logger.error("Query execution failed", operation=operation, table=self.table, error=str(e))
                raise StoreConnectivityError(
                    f"Query failed: {e}",
                    {"collection": self.collection, "operation": operation, "backend": self.backend},
                ) from e

    @staticmethod
    def _vector_list(value: Any) -> Optional[List[float]]:
        if value is None:
            return None
        return [float(v) for v in np.asarray(value, dtype=np.float32).tolist()]

    def _row_to_document(self, row: Any) -> StoredDocument:
        return StoredDocument(
            id=row["id"],
            vector=self._vector_list(row["vector"]),
            payload=row["payload"] or {},
        )

    async def collection_exists(self) -> bool:
        return await self._execute_query(
            "vector.collection_exists",
            "SELECT to_regclass($1) IS NOT NULL",
            self.table,
            fetch_val=True,
        )

    async def _existing_dimension(self) -> Optional[int]:
        # pgvector stores the declared dimension as the column type modifier
        typmod = await self._execute_query(
            "vector.collection_info",
            """
                SELECT atttypmod FROM pg_attribute
                WHERE attrelid = to_regclass($1) AND attname = 'vector'
            """,
            self.table,
            fetch_val=True,
        )
        return typmod if typmod is not None and typmod > 0 else None

    async def _ensure_extension(self) -> None:
        """Create the pgvector extension on a connection outside the pool.

        Pooled connections register the ``vector`` codec as they open, which
        fails on a database where the extension does not exist yet.
        """
        with trace_operation("vector.create_extension", collection=self.collection, backend=self.backend):
            try:
                conn = await asyncpg.connect(self.dsn, timeout=self.command_timeout)
                try:
                    await conn.execute("CREATE EXTENSION IF NOT EXISTS vector")
                finally:
                    await conn.close()
            except Exception as e:
                logger.error("Failed to create pgvector extension", error=str(e))
                raise StoreConnectivityError(
                    f"Failed to create pgvector extension: {e}",
                    {"collection": self.collection, "operation": "create_extension", "backend": self.backend},
                ) from e

    async def initialize_collection(self, vector_dim: int) -> None:
        await self._ensure_extension()
        if await self.collection_exists():
            self._check_existing_dimension(await self._existing_dimension(), vector_dim)
        else:
            await self._execute_query(
                "vector.create_collection",
                f"""
                    CREATE TABLE IF NOT EXISTS {self.table} (
                        id TEXT PRIMARY KEY,
                        vector vector({int(vector_dim)}),
                        payload JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
                    )
                """,
            )
            logger.info("Created PgVector table", table=self.table, vector_dim=vector_dim)
        self._vector_dim = vector_dim

    async def upsert(self, document: StoredDocument) -> None:
        self._require_initialized("upsert")
        self._check_vector(document.vector, "upsert")
        vector = np.asarray(document.vector, dtype=np.float32) if document.vector is not None else None
        await self._execute_query(
            "vector.upsert",
            f"""
                INSERT INTO {self.table} (id, vector, payload)
                VALUES ($1, $2, $3)
                ON CONFLICT (id)
                DO UPDATE SET
                    vector = EXCLUDED.vector,
                    payload = EXCLUDED.payload,
                    updated_at = CURRENT_TIMESTAMP
            """,
            document.id,
            vector,
            document.payload,
        )

    async def get(self, document_id: str) -> Optional[StoredDocument]:
        self._require_initialized("get")
        row = await self._execute_query(
            "vector.retrieve",
            f"SELECT id, vector, payload FROM {self.table} WHERE id = $1",
            document_id,
            fetch_one=True,
        )
        return self._row_to_document(row) if row else None

    async def delete(self, document_id: str) -> None:
        self._require_initialized("delete")
        await self._execute_query("vector.delete", f"DELETE FROM {self.table} WHERE id = $1", document_id)

    async def delete_all(self) -> None:
        self._require_initialized("delete_all")
        await self._execute_query("vector.delete_all", f"DELETE FROM {self.table}")

    async def get_all(self, limit: Optional[int] = None) -> List[StoredDocument]:
        self._require_initialized("get_all")
        rows = await self._execute_query(
            "vector.scroll",
            f"SELECT id, vector, payload FROM {self.table} ORDER BY updated_at, id LIMIT $1",
            limit,
            fetch=True,
        )
        return [self._row_to_document(row) for row in rows]

    async def scroll(self, filters: Optional[PayloadFilters], limit: int) -> List[StoredDocument]:
        self._require_initialized("scroll")
        rows = await self._execute_query(
            "vector.scroll",
            f"SELECT id, vector, payload FROM {self.table} ORDER BY updated_at, id",
            fetch=True,
        )
        matches = [self._row_to_document(row) for row in rows if payload_matches(row["payload"] or {}, filters)]
        return matches[:limit]

    async def search_similar(
        self,
        vector: Sequence[float],
        limit: int,
        threshold: Optional[float] = None
    ) -> List[ScoredDocument]:
        self._require_initialized("search_similar")
        self._check_vector(vector, "search_similar")
        rows = await self._execute_query(
            "vector.search",
            f"""
                SELECT id, payload, 1 - (vector <=> $1) AS similarity
                FROM {self.table}
                WHERE vector IS NOT NULL
                ORDER BY vector <=> $1
                LIMIT $2
            """,
            np.asarray(vector, dtype=np.float32),
            limit,
            fetch=True,
        )

        results = []
        for row in rows:
            similarity = min(1.0, max(0.0, float(row["similarity"])))
            if threshold is not None and similarity < threshold:
                continue
            results.append(ScoredDocument(id=row["id"], score=similarity, payload=row["payload"] or {}))
        return results

    async def search_by_keywords(
        self,
        tokens: Sequence[str],
        limit: int,
        threshold: Optional[float] = None
    ) -> List[ScoredDocument]:
        self._require_initialized("search_by_keywords")
        rows = await self._execute_query(
            "vector.search_keywords",
            f"SELECT id, payload FROM {self.table} ORDER BY updated_at, id",
            fetch=True,
        )
        return rank_by_keywords(((row["id"], row["payload"] or {}) for row in rows), tokens, limit, threshold)

    async def collection_info(self) -> CollectionInfo:
        self._require_initialized("collection_info")
        count = await self._execute_query(
            "vector.count",
            f"SELECT COUNT(*) FROM {self.table}",
            fetch_val=True,
        )
        return CollectionInfo(count=int(count or 0), vector_dim=await self._existing_dimension())

    async def health_check(self) -> bool:
        """Check if the database is reachable."""
        try:
            await self._execute_query("vector.health_check", "SELECT 1", fetch_val=True)
            return True
        except StoreConnectivityError as e:
            logger.error("Health check failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close the connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Closed PgVector connection pool")

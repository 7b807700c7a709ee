"""Metrics collection for the knowledge search engines.

Provides a thin convenience wrapper around ``prometheus_client`` so every
engine records store operations, search outcomes and embedding fallbacks
with consistent label sets.

Design notes
- Metrics and labels are predeclared to avoid cardinality explosions
- A single registry is kept per collector (can be injected for testing)
"""

import time
from contextlib import contextmanager
from typing import Iterator, Optional
from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest
import structlog

logger = structlog.get_logger("metrics")


class MetricsCollector:
    """Centralized metrics collection for the knowledge stores.

    Parameters
    - service_name: Logical name used for scoping
    - registry: Optional custom ``CollectorRegistry`` (e.g. for testing)
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        self.store_operations = Counter(
            'kb_store_operations_total',
            'Total engine operations partitioned by outcome',
            ['operation', 'collection', 'status'],
            registry=self.registry
        )

        self.operation_duration = Histogram(
            'kb_operation_duration_seconds',
            'Engine operation duration',
            ['operation', 'collection'],
            registry=self.registry
        )

        self.search_results = Counter(
            'kb_search_results_total',
            'Search results returned, by match type',
            ['collection', 'match_type'],
            registry=self.registry
        )

        self.embedding_requests = Counter(
            'kb_embedding_requests_total',
            'Embedding generation requests',
            ['provider', 'status'],
            registry=self.registry
        )

        self.embedding_fallbacks = Counter(
            'kb_embedding_fallbacks_total',
            'Operations that continued without embeddings in graceful mode',
            ['collection', 'operation'],
            registry=self.registry
        )

    def record_operation(
        self,
        operation: str,
        collection: str,
        status: str,
        duration: Optional[float] = None
    ) -> None:
        """Record one engine operation; duration is in seconds."""
        self.store_operations.labels(operation=operation, collection=collection, status=status).inc()
        if duration is not None:
            self.operation_duration.labels(operation=operation, collection=collection).observe(duration)

    @contextmanager
    def track(self, operation: str, collection: str) -> Iterator[None]:
        """Time a block and record it as ``success`` or ``error``."""
        start_time = time.perf_counter()
        try:
            yield
        except BaseException:
            self.record_operation(operation, collection, "error", time.perf_counter() - start_time)
            raise
        self.record_operation(operation, collection, "success", time.perf_counter() - start_time)

    def record_search_result(self, collection: str, match_type: str) -> None:
        self.search_results.labels(collection=collection, match_type=match_type).inc()

    def record_embedding(self, provider: str, status: str) -> None:
        self.embedding_requests.labels(provider=provider, status=status).inc()

    def record_fallback(self, collection: str, operation: str) -> None:
        """Record a graceful-mode continuation without embeddings."""
        self.embedding_fallbacks.labels(collection=collection, operation=operation).inc()

    def get_metrics(self) -> str:
        """Get metrics in Prometheus exposition format for scraping."""
        return generate_latest(self.registry).decode('utf-8')


# Global metrics collector instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector(service_name: str = "knowledge-search") -> MetricsCollector:
    """Get or create the process-wide metrics collector.

    Returns a singleton to avoid duplicate collectors/labels.
    """
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector(service_name)
        logger.debug("Created metrics collector", service_name=service_name)
    return _metrics_collector

"""Common utilities shared across the knowledge stores.

Includes:
- ``config``: Pydantic-based configuration from environment variables.
- ``logging``: structured logging setup with structlog.
- ``errors``: the shared exception root carrying operation context.
- ``metrics``: Prometheus metrics helpers.
- ``tracing``: OpenTelemetry span helpers for backend calls.

Import pattern:
- from kbsearch.common.config import KnowledgeSearchConfig
- from kbsearch.common.logging import configure_logging
"""

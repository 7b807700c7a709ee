"""Hybrid keyword and embedding search over knowledge stores.

Subpackages
- ``kbsearch.common``: configuration, logging, errors, metrics, tracing
- ``kbsearch.vector_store``: document store contract and backends
- ``kbsearch.embeddings``: embedding provider contract and clients
- ``kbsearch.codecs``: record types and their codecs
- ``kbsearch.search``: the generic hybrid search engine
- ``kbsearch.knowledge``: wiring for the capability, pattern and policy stores
"""

__version__ = "0.1.0"

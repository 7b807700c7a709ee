"""Tests for the knowledge search packages.

Unit tests run against the in-memory document store and a deterministic fake
embedding provider. Tests under ``integration/`` need a live Qdrant and are
skipped when it is not reachable.
"""

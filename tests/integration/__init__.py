"""Integration tests against live backends.

These run only with ``-m integration`` and skip when the backend is not
reachable at the configured URL.
"""

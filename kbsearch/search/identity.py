"""Stable document ids derived from natural keys.

An id is the SHA-256 hex digest of ``prefix + natural_key`` (UTF-8), with its
first 32 hex characters laid out as a UUID (8-4-4-4-12). Each domain supplies
its own prefix (``capability-``, ``pattern-``, ``policy-``), so the same key
in two domains never collides and any implementation can recompute an id
without a lookup. The ids carry no UUID version bits.
"""

import hashlib
import uuid


def derive_id(natural_key: str, prefix: str = "") -> str:
    """Return the document id for ``natural_key`` within a domain."""
    digest = hashlib.sha256(f"{prefix}{natural_key}".encode("utf-8")).hexdigest()
    return f"{digest[0:8]}-{digest[8:12]}-{digest[12:16]}-{digest[16:20]}-{digest[20:32]}"


def is_document_id(value: str) -> bool:
    """Whether ``value`` is a canonical UUID-shaped string (any version)."""
    try:
        return str(uuid.UUID(value)) == value.lower()
    except (ValueError, AttributeError, TypeError):
        return False

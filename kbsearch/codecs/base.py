"""Codec contract binding a record type to the generic search engine.

A ``Codec`` is a plain value holding the functions the engine needs to turn
a record into a stored document and back. Record types never subclass
anything; each domain module builds one ``Codec`` instance.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Generic, Iterable, List, Mapping, Optional, TypeVar

from kbsearch.search.identity import derive_id

R = TypeVar("R")

STOP_WORDS: FrozenSet[str] = frozenset({
    "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "is", "are", "was", "were", "be", "been", "have", "has", "had",
    "do", "does", "did", "will", "would", "could", "should", "may", "might", "can",
    "this", "that", "these", "those",
    "i", "you", "he", "she", "it", "we", "they",
    "me", "him", "her", "us", "them",
    "my", "your", "his", "our", "their",
    "a", "an",
})


@dataclass(frozen=True)
class Codec(Generic[R]):
    """Functions mapping one record type onto stored documents.

    Parameters
    - name: Domain name used in logs and metrics
    - identity: Natural key of a record (hashed into the document id)
    - search_text: Lowercase text indexed for keyword search
    - encode: Payload fields, excluding ``searchText`` and ``hasEmbedding``
    - decode: Inverse of ``encode``; missing fields take their defaults
    - token_filter: Keeps query tokens worth matching
    - id_prefix: Prepended to the natural key before hashing it into an id
    """
    name: str
    identity: Callable[[R], str]
    search_text: Callable[[R], str]
    encode: Callable[[R], Dict[str, Any]]
    decode: Callable[[Mapping[str, Any]], R]
    token_filter: Callable[[str], bool]
    id_prefix: str

    def document_id(self, key: str) -> str:
        """Document id of the record whose natural key is ``key``."""
        return derive_id(key, self.id_prefix)


def drop_short_tokens(token: str) -> bool:
    """Keep tokens longer than two characters."""
    return len(token) > 2


def drop_stop_words(token: str) -> bool:
    """Keep tokens longer than two characters that are not stop words."""
    return len(token) > 2 and token not in STOP_WORDS


def join_search_text(parts: Iterable[Any]) -> str:
    """Join scalar and list fields into one lowercase string.

    Empty values are skipped so optional fields do not leave gaps.
    """
    pieces: List[str] = []
    for part in parts:
        if part is None:
            continue
        if isinstance(part, (list, tuple)):
            pieces.extend(str(item) for item in part if item not in (None, ""))
        elif part != "":
            pieces.append(str(part))
    return " ".join(pieces).lower()


def list_field(payload: Mapping[str, Any], key: str) -> List[Any]:
    value = payload.get(key)
    return list(value) if isinstance(value, (list, tuple)) else []


def str_field(payload: Mapping[str, Any], key: str, default: str) -> str:
    value = payload.get(key)
    return value if isinstance(value, str) else default


def optional_str_field(payload: Mapping[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    return value if isinstance(value, str) else None


def required_field(payload: Mapping[str, Any], key: str, codec: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"{codec} payload is missing required field '{key}'")
    return value

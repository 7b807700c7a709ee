"""Keyword scoring shared by every document store.

Stores that cannot rank keyword matches natively (all of them, today) use
``keyword_score`` on candidate documents so the same query yields the same
scores regardless of backend.

Scoring
- 1.0 per query token found as a whole word of ``searchText``
- 0.5 per token that is a substring of a word, or contains a word of at
  least three characters
- document score is the mean over query tokens, capped at 1.0
"""

import re
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from .base import ScoredDocument

SEARCH_TEXT_FIELD = "searchText"

EXACT_MATCH_SCORE = 1.0
PARTIAL_MATCH_SCORE = 0.5

# Shorter words ("a", "io") would partially match most tokens
MIN_CONTAINED_WORD_LENGTH = 3

_WORD_SPLIT = re.compile(r"[^0-9a-z]+")


def split_words(text: str) -> List[str]:
    """Lowercase ``text`` and split it on non-alphanumeric characters."""
    return [word for word in _WORD_SPLIT.split(text.lower()) if word]


def _token_score(token: str, words: Sequence[str], word_set: frozenset) -> float:
    if token in word_set:
        return EXACT_MATCH_SCORE
    for word in words:
        if token in word or (len(word) >= MIN_CONTAINED_WORD_LENGTH and word in token):
            return PARTIAL_MATCH_SCORE
    return 0.0


def keyword_score(tokens: Sequence[str], search_text: str) -> float:
    """Score one document's search text against query tokens."""
    if not tokens:
        return 0.0
    words = split_words(search_text)
    if not words:
        return 0.0
    word_set = frozenset(words)
    total = sum(_token_score(token.lower(), words, word_set) for token in tokens)
    return min(1.0, total / len(tokens))


def rank_by_keywords(
    candidates: Iterable[Tuple[str, Mapping[str, Any]]],
    tokens: Sequence[str],
    limit: int,
    threshold: Optional[float] = None
) -> List[ScoredDocument]:
    """Score ``(id, payload)`` candidates and keep the best ``limit``.

    Zero scores are dropped, as are scores below ``threshold``. Equal scores
    keep candidate order.
    """
    scored: List[ScoredDocument] = []
    for document_id, payload in candidates:
        score = keyword_score(tokens, str(payload.get(SEARCH_TEXT_FIELD) or ""))
        if score <= 0.0:
            continue
        if threshold is not None and score < threshold:
            continue
        scored.append(ScoredDocument(id=document_id, score=score, payload=dict(payload)))

    scored.sort(key=lambda document: document.score, reverse=True)
    return scored[:limit]

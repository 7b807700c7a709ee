"""Query tokenization for keyword retrieval."""

from typing import Callable, List

from kbsearch.vector_store.keywords import split_words


def extract_keywords(query: str, token_filter: Callable[[str], bool]) -> List[str]:
    """Lowercase alphanumeric tokens of ``query`` that pass ``token_filter``.

    Duplicates are removed; first occurrence order is kept.
    """
    seen = set()
    keywords: List[str] = []
    for token in split_words(query):
        if token in seen or not token_filter(token):
            continue
        seen.add(token)
        keywords.append(token)
    return keywords

"""Result fusion for hybrid search.

Combines similarity hits and keyword hits for the same collection into one
list keyed by document id. Unlike rank-based fusion, absolute scores are
kept so a score threshold means the same thing in every search mode.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

import structlog

from kbsearch.vector_store.base import ScoredDocument

from .types import MatchType

logger = structlog.get_logger("search.scoring")


@dataclass
class MergedHit:
    id: str
    score: float
    match_type: MatchType
    payload: Dict[str, Any] = field(default_factory=dict)


def clamp_score(score: float) -> float:
    return min(1.0, max(0.0, score))


class WeightedHybridFusion:
    """Weighted fusion of semantic and keyword scores.

    Parameters
    - semantic_weight: Multiplier for similarity of documents found by both
    - keyword_weight: Multiplier for keyword scores
    - hybrid_bonus: Added when a document is found by both methods

    Scores
    - both: ``clamp(sem * semantic_weight + kw * keyword_weight + bonus)``
    - semantic only: ``sem``
    - keyword only: ``kw * keyword_weight``
    """

    def __init__(self, semantic_weight: float = 1.0, keyword_weight: float = 0.6, hybrid_bonus: float = 0.1):
        self.semantic_weight = semantic_weight
        self.keyword_weight = keyword_weight
        self.hybrid_bonus = hybrid_bonus

    def keyword_only(self, keyword_results: Sequence[ScoredDocument]) -> List[MergedHit]:
        return [
            MergedHit(
                id=result.id,
                score=clamp_score(result.score * self.keyword_weight),
                match_type=MatchType.KEYWORD,
                payload=result.payload,
            )
            for result in keyword_results
        ]

    def fuse_results(
        self,
        semantic_results: Sequence[ScoredDocument],
        keyword_results: Sequence[ScoredDocument]
    ) -> List[MergedHit]:
        """Merge both result lists by id.

        Output order is semantic results first (in store order), then
        keyword-only results (in store order). Sorting is left to the caller.
        """
        merged: Dict[str, MergedHit] = {}
        semantic_scores: Dict[str, float] = {}

        for result in semantic_results:
            if result.id in merged:
                continue
            semantic_scores[result.id] = result.score
            merged[result.id] = MergedHit(
                id=result.id,
                score=clamp_score(result.score),
                match_type=MatchType.SEMANTIC,
                payload=result.payload,
            )

        for result in keyword_results:
            hit = merged.get(result.id)
            if hit is None:
                merged[result.id] = MergedHit(
                    id=result.id,
                    score=clamp_score(result.score * self.keyword_weight),
                    match_type=MatchType.KEYWORD,
                    payload=result.payload,
                )
            elif hit.match_type == MatchType.SEMANTIC:
                hit.score = clamp_score(
                    semantic_scores[result.id] * self.semantic_weight
                    + result.score * self.keyword_weight
                    + self.hybrid_bonus
                )
                hit.match_type = MatchType.HYBRID

        logger.debug(
            "Hybrid fusion completed",
            semantic_count=len(semantic_results),
            keyword_count=len(keyword_results),
            fused_count=len(merged)
        )
        return list(merged.values())

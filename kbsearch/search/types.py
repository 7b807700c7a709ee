"""Value types shared by the hybrid search engine and its callers."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Generic, Optional, Sequence, TypeVar

R = TypeVar("R")


class DegradationMode(str, Enum):
    """Policy applied when the embedding provider is absent or failing."""
    STRICT = "strict"
    GRACEFUL = "graceful"


class MatchType(str, Enum):
    """Which retrieval method produced a search result."""
    SEMANTIC = "semantic"
    KEYWORD = "keyword"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class EngineConfig:
    """Immutable per-engine configuration.

    Parameters
    - collection: Name of the document collection the engine owns
    - mode: ``STRICT`` raises on embedding problems, ``GRACEFUL`` degrades
    - semantic_weight / keyword_weight: Multipliers applied when merging
    - hybrid_bonus: Added to documents found by both retrieval methods
    - default_vector_dimension: Collection size used without a provider
    - default_limit / default_score_threshold: Search defaults
    """
    collection: str
    mode: DegradationMode = DegradationMode.GRACEFUL
    semantic_weight: float = 1.0
    keyword_weight: float = 0.6
    hybrid_bonus: float = 0.1
    default_vector_dimension: int = 1536
    default_limit: int = 10
    default_score_threshold: float = 0.1

    def __post_init__(self) -> None:
        if not self.collection:
            raise ValueError("collection name must not be empty")
        if self.default_vector_dimension <= 0:
            raise ValueError("default_vector_dimension must be positive")
        if self.default_limit <= 0:
            raise ValueError("default_limit must be positive")
        # Accept plain strings from callers that skip the enum
        object.__setattr__(self, "mode", DegradationMode(self.mode))


@dataclass
class SearchOptions(Generic[R]):
    """Per-call search options; ``None`` means use the engine default.

    ``filters`` are predicates over decoded records, applied after merging.
    """
    limit: Optional[int] = None
    score_threshold: Optional[float] = None
    filters: Sequence[Callable[[R], bool]] = field(default_factory=tuple)


@dataclass
class SearchResult(Generic[R]):
    """A decoded record with its merged relevance score in ``[0, 1]``."""
    record: R
    score: float
    match_type: MatchType


@dataclass(frozen=True)
class SearchMode:
    """Whether semantic retrieval is currently possible, and why not."""
    semantic: bool
    provider: Optional[str] = None
    reason: Optional[str] = None

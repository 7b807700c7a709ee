"""Resource capability records and their codec.

A capability describes what a cluster resource type can do (inferred
elsewhere) so users can find it by intent, e.g. "managed postgres". The
natural key is the resource name (``sqls.devopstoolkit.live``), so analyzing
the same resource again overwrites its entry.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Sequence

from .base import (
    Codec,
    drop_short_tokens,
    join_search_text,
    list_field,
    optional_str_field,
    required_field,
    str_field,
)

if TYPE_CHECKING:
    from kbsearch.search.engine import HybridSearchEngine

COMPLEXITY_LEVELS = ("low", "medium", "high")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ResourceCapability:
    """Inferred capabilities of one resource type."""
    resource_name: str
    capabilities: List[str] = field(default_factory=list)
    providers: List[str] = field(default_factory=list)
    abstractions: List[str] = field(default_factory=list)
    complexity: str = "medium"
    description: str = ""
    use_case: str = ""
    api_version: Optional[str] = None
    version: Optional[str] = None
    group: Optional[str] = None
    printer_columns: List[Dict[str, Any]] = field(default_factory=list)
    confidence: float = 0.0
    analyzed_at: str = field(default_factory=_utc_now)
    id: Optional[str] = None


def capability_search_text(capability: ResourceCapability) -> str:
    return join_search_text([
        capability.resource_name,
        capability.capabilities,
        capability.providers,
        capability.abstractions,
        capability.description,
        capability.use_case,
        capability.complexity,
    ])


def encode_capability(capability: ResourceCapability) -> Dict[str, Any]:
    return {
        "resourceName": capability.resource_name,
        "apiVersion": capability.api_version,
        "version": capability.version,
        "group": capability.group,
        "capabilities": list(capability.capabilities),
        "providers": list(capability.providers),
        "abstractions": list(capability.abstractions),
        "complexity": capability.complexity,
        "description": capability.description,
        "useCase": capability.use_case,
        "printerColumns": [dict(column) for column in capability.printer_columns],
        "confidence": capability.confidence,
        "analyzedAt": capability.analyzed_at,
    }


def decode_capability(payload: Mapping[str, Any]) -> ResourceCapability:
    confidence = payload.get("confidence")
    return ResourceCapability(
        resource_name=required_field(payload, "resourceName", "capability"),
        api_version=optional_str_field(payload, "apiVersion"),
        version=optional_str_field(payload, "version"),
        group=optional_str_field(payload, "group"),
        capabilities=list_field(payload, "capabilities"),
        providers=list_field(payload, "providers"),
        abstractions=list_field(payload, "abstractions"),
        complexity=str_field(payload, "complexity", "medium") or "medium",
        description=str_field(payload, "description", ""),
        use_case=str_field(payload, "useCase", ""),
        printer_columns=[dict(column) for column in list_field(payload, "printerColumns") if isinstance(column, dict)],
        confidence=float(confidence) if isinstance(confidence, (int, float)) else 0.0,
        analyzed_at=str_field(payload, "analyzedAt", "unknown") or "unknown",
    )


CAPABILITY_CODEC: Codec[ResourceCapability] = Codec(
    name="capability",
    identity=lambda capability: capability.resource_name,
    search_text=capability_search_text,
    encode=encode_capability,
    decode=decode_capability,
    token_filter=drop_short_tokens,
    id_prefix="capability-",
)


def capability_filters(
    complexity: Optional[str] = None,
    providers: Optional[Sequence[str]] = None
) -> List[Callable[[ResourceCapability], bool]]:
    """Search post-filters for capabilities.

    Parameters
    - complexity: Keep only this complexity level
    - providers: Keep capabilities supporting at least one of these providers
    """
    filters: List[Callable[[ResourceCapability], bool]] = []
    if complexity is not None:
        if complexity not in COMPLEXITY_LEVELS:
            raise ValueError(f"complexity must be one of {COMPLEXITY_LEVELS}, got {complexity!r}")
        filters.append(lambda capability: capability.complexity == complexity)
    if providers:
        wanted = set(providers)
        filters.append(lambda capability: any(provider in wanted for provider in capability.providers))
    return filters


def matches_kind(resource_name: str, kind: str) -> bool:
    """Whether a resource name refers to ``kind``.

    Accepts the kind itself, its plural (``s``, ``es``, ``y`` to ``ies``)
    and the CRD ``plural.group`` form. A plural must be followed by a dot so
    ``cluster`` does not match ``clusterroles.rbac.authorization.k8s.io``.
    """
    name = resource_name.lower()
    kind = kind.lower()
    if name == kind:
        return True

    plurals = [kind + "s", kind + "es"]
    if kind.endswith("y"):
        plurals.append(kind[:-1] + "ies")
    return any(name == plural or name.startswith(plural + ".") for plural in plurals)


async def find_capability_by_kind(
    engine: "HybridSearchEngine[ResourceCapability]",
    kind: str,
    api_version: str
) -> Optional[ResourceCapability]:
    """Look up a capability by resource kind and full apiVersion.

    Example: ``("Cluster", "postgresql.cnpg.io/v1")`` finds
    ``clusters.postgresql.cnpg.io``.
    """
    candidates = await engine.query_with_filter({"apiVersion": api_version}, limit=100)
    for capability in candidates:
        if matches_kind(capability.resource_name, kind):
            return capability
    return None

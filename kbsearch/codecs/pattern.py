"""Organizational deployment patterns and their codec."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from .base import Codec, drop_stop_words, join_search_text, list_field, required_field, str_field


@dataclass
class OrganizationalPattern:
    """A reusable deployment pattern matched against user intent."""
    name: str
    description: str = ""
    triggers: List[str] = field(default_factory=list)
    suggested_resources: List[str] = field(default_factory=list)
    rationale: str = ""
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    created_by: str = "unknown"
    id: Optional[str] = None


def pattern_search_text(pattern: OrganizationalPattern) -> str:
    return join_search_text([
        pattern.name,
        pattern.description,
        pattern.triggers,
        pattern.suggested_resources,
        pattern.rationale,
    ])


def encode_pattern(pattern: OrganizationalPattern) -> Dict[str, Any]:
    return {
        "name": pattern.name,
        "description": pattern.description,
        "triggers": list(pattern.triggers),
        "suggestedResources": list(pattern.suggested_resources),
        "rationale": pattern.rationale,
        "createdAt": pattern.created_at,
        "createdBy": pattern.created_by,
    }


def decode_pattern(payload: Mapping[str, Any]) -> OrganizationalPattern:
    return OrganizationalPattern(
        name=required_field(payload, "name", "pattern"),
        description=str_field(payload, "description", ""),
        triggers=list_field(payload, "triggers"),
        suggested_resources=list_field(payload, "suggestedResources"),
        rationale=str_field(payload, "rationale", ""),
        created_at=str_field(payload, "createdAt", "unknown"),
        created_by=str_field(payload, "createdBy", "unknown"),
    )


PATTERN_CODEC: Codec[OrganizationalPattern] = Codec(
    name="pattern",
    identity=lambda pattern: pattern.name,
    search_text=pattern_search_text,
    encode=encode_pattern,
    decode=decode_pattern,
    token_filter=drop_stop_words,
    id_prefix="pattern-",
)

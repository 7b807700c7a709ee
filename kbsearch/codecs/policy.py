"""Policy intents and their codec.

A policy intent captures an organizational rule ("databases must run in the
EU") and tracks which generated cluster policies currently enforce it.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from .base import Codec, drop_short_tokens, join_search_text, list_field, required_field, str_field


@dataclass
class DeployedPolicyReference:
    """A cluster policy applied on behalf of an intent."""
    name: str
    applied_at: str


@dataclass
class PolicyIntent:
    name: str
    description: str = ""
    triggers: List[str] = field(default_factory=list)
    rationale: str = ""
    deployed_policies: List[DeployedPolicyReference] = field(default_factory=list)
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    created_by: str = "unknown"
    id: Optional[str] = None


def policy_search_text(policy: PolicyIntent) -> str:
    return join_search_text([
        policy.name,
        policy.description,
        policy.triggers,
        policy.rationale,
    ])


def encode_policy(policy: PolicyIntent) -> Dict[str, Any]:
    return {
        "name": policy.name,
        "description": policy.description,
        "triggers": list(policy.triggers),
        "rationale": policy.rationale,
        "deployedPolicies": [
            {"name": reference.name, "appliedAt": reference.applied_at}
            for reference in policy.deployed_policies
        ],
        "createdAt": policy.created_at,
        "createdBy": policy.created_by,
    }


def _decode_reference(raw: Mapping[str, Any]) -> DeployedPolicyReference:
    return DeployedPolicyReference(
        name=str_field(raw, "name", ""),
        applied_at=str_field(raw, "appliedAt", "unknown"),
    )


def decode_policy(payload: Mapping[str, Any]) -> PolicyIntent:
    return PolicyIntent(
        name=required_field(payload, "name", "policy"),
        description=str_field(payload, "description", ""),
        triggers=list_field(payload, "triggers"),
        rationale=str_field(payload, "rationale", ""),
        deployed_policies=[
            _decode_reference(raw)
            for raw in list_field(payload, "deployedPolicies")
            if isinstance(raw, dict)
        ],
        created_at=str_field(payload, "createdAt", "unknown"),
        created_by=str_field(payload, "createdBy", "unknown"),
    )


POLICY_CODEC: Codec[PolicyIntent] = Codec(
    name="policy",
    identity=lambda policy: policy.name,
    search_text=policy_search_text,
    encode=encode_policy,
    decode=decode_policy,
    token_filter=drop_short_tokens,
    id_prefix="policy-",
)

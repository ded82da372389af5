"""Data models for nodes, pods, taints and policy."""

from readiness_gate.models.node import NodeSnapshot
from readiness_gate.models.pod import PodSnapshot
from readiness_gate.models.policy import Policy, Workload, selector_matches
from readiness_gate.models.taint import (
    NO_SCHEDULE,
    TAINT_KEY_PREFIX,
    Taint,
    is_owned,
    owned_taint_key,
)

__all__ = [
    "NodeSnapshot",
    "PodSnapshot",
    "Policy",
    "Workload",
    "Taint",
    "NO_SCHEDULE",
    "TAINT_KEY_PREFIX",
    "is_owned",
    "owned_taint_key",
    "selector_matches",
]

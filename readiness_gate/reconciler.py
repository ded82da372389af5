"""Taint reconciliation: the desired owned taints for one node.

The reconciler never performs writes. It resolves readiness for each
workload the policy applies to the node, then folds the answers into a copy
of the node and a record of the taint keys added and removed.
"""

from collections.abc import Callable, Iterable
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from readiness_gate.logging_config import get_logger
from readiness_gate.models.node import NodeSnapshot
from readiness_gate.models.policy import Policy, Workload
from readiness_gate.models.taint import TAINT_KEY_PREFIX, Taint
from readiness_gate.readiness import ReadinessResolver

logger = get_logger(__name__)

FIRST_READY_ANNOTATION = f"{TAINT_KEY_PREFIX}/first-time-ready"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TaintChanges(BaseModel):
    """Owned taint keys added and removed during one pass."""

    added: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.added and not self.removed


class ReconcileResult(BaseModel):
    """Outcome of reconciling one node."""

    node: NodeSnapshot
    changes: TaintChanges = Field(default_factory=TaintChanges)
    in_scope: bool = True
    first_ready_marked: bool = False

    @property
    def changed(self) -> bool:
        """True if the node differs from the snapshot that was reconciled."""
        return not self.changes.empty or self.first_ready_marked

    @property
    def taintless(self) -> bool:
        """True if the node carries no owned taints."""
        return not self.node.owned_taints()

    @property
    def first_time_ready(self) -> str | None:
        return self.node.annotations.get(FIRST_READY_ANNOTATION)


class TaintReconciler:
    """Computes the owned taints a node should carry under a policy."""

    def __init__(self, resolver: ReadinessResolver, clock: Callable[[], datetime] = utc_now):
        """Initialize the reconciler.

        Args:
            resolver: Readiness lookup for workload pods
            clock: Source of the current time for the first-ready annotation
        """
        self.resolver = resolver
        self.clock = clock

    def reconcile(self, node: NodeSnapshot, policy: Policy) -> ReconcileResult:
        """Reconcile ``node`` against ``policy``.

        Nodes outside the policy's selectors get no new taints. Their existing
        owned taints are only swept when the policy sets ``sweep_out_of_scope``.

        Raises:
            ResolutionError: If any workload's pod readiness cannot be determined;
                no result is produced in that case
        """
        in_scope = policy.in_scope(node.labels)
        workloads = policy.workloads if in_scope else ()
        if not in_scope:
            logger.debug(f"Node {node.name} is outside the policy selectors")

        node_copy, changes = self.calculate_taints(
            node, workloads, sweep=in_scope or policy.sweep_out_of_scope
        )

        marked = False
        if policy.mark_first_ready:
            marked = self.mark_first_ready(node_copy)

        return ReconcileResult(
            node=node_copy, changes=changes, in_scope=in_scope, first_ready_marked=marked
        )

    def calculate_taints(
        self, node: NodeSnapshot, workloads: Iterable[Workload], sweep: bool = True
    ) -> tuple[NodeSnapshot, TaintChanges]:
        """Fold workload readiness into a copy of ``node``.

        Args:
            node: Snapshot to start from; left unmodified
            workloads: Workloads whose readiness gates the node
            sweep: Remove owned taints no workload asked to keep

        Returns:
            The updated copy and the taint keys added and removed
        """
        node_copy = node.model_copy(deep=True)
        changes = TaintChanges()

        # Owned taints may come from an older policy, so every one of them is
        # a removal candidate until a workload claims it. Dict keeps node order.
        stale = {t.key: None for t in node_copy.taints if t.owned}

        for workload in workloads:
            key = workload.taint_key
            if self.resolver.is_ready(node.name, workload):
                continue

            if key in stale:
                del stale[key]
                continue

            node_copy.taints.append(Taint.for_workload(workload.namespace, workload.name))
            changes.added.append(key)

        if sweep:
            for key in stale:
                node_copy.taints = [t for t in node_copy.taints if t.key != key]
                changes.removed.append(key)

        return node_copy, changes

    def mark_first_ready(self, node: NodeSnapshot) -> bool:
        """Stamp the first-ready annotation on a taintless node that lacks one.

        The annotation is never removed, even if taints come back later.

        Returns:
            True if the annotation was added
        """
        if node.owned_taints() or FIRST_READY_ANNOTATION in node.annotations:
            return False

        node.annotations[FIRST_READY_ANNOTATION] = self.clock().strftime(TIMESTAMP_FORMAT)
        return True

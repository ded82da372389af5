"""Node handler: reconcile a node, persist the result and report it."""

from typing import Protocol

from readiness_gate.exceptions import PersistenceError, ReadinessGateError, ResolutionError
from readiness_gate.logging_config import get_logger
from readiness_gate.models.node import NodeSnapshot
from readiness_gate.models.policy import Policy
from readiness_gate.reconciler import ReconcileResult, TaintReconciler

logger = get_logger(__name__)

EVENT_TYPE_NORMAL = "Normal"
EVENT_REASON_TAINTS_CHANGED = "TaintsChanged"


class NodeUpdater(Protocol):
    """Writes a node's taints and annotations back to the cluster."""

    def update_node(self, node: NodeSnapshot) -> None: ...


class EventEmitter(Protocol):
    """Records a notification about a node."""

    def emit(self, subject: str, kind: str, reason: str, message: str) -> None: ...


def format_keys(keys: list[str]) -> str:
    """Render taint keys as a bracketed, space-separated list."""
    return "[" + " ".join(keys) + "]"


def format_event_message(result: ReconcileResult) -> str:
    """Render a reconcile result as a human-readable event message."""
    taintless = "true" if result.taintless else "false"
    added = format_keys(result.changes.added)
    removed = format_keys(result.changes.removed)
    return (
        f"Taints added: {added}, Taints removed: {removed}, "
        f'TaintLess: {taintless}, FirstTimeReady: "{result.first_time_ready or ""}"'
    )


class NodeHandler:
    """Applies the policy to single nodes."""

    def __init__(
        self,
        reconciler: TaintReconciler,
        updater: NodeUpdater,
        emitter: EventEmitter,
        policy: Policy,
        dry_run: bool = False,
    ):
        """Initialize the handler.

        Args:
            reconciler: Computes the desired taints
            updater: Persists changed nodes
            emitter: Receives a TaintsChanged event per persisted change
            policy: Policy applied to every node
            dry_run: Compute and log changes without writing them
        """
        self.reconciler = reconciler
        self.updater = updater
        self.emitter = emitter
        self.policy = policy
        self.dry_run = dry_run

    def update_policy(self, policy: Policy) -> None:
        """Replace the policy used by subsequent passes."""
        self.policy = policy

    def handle_node(self, node: NodeSnapshot) -> ReconcileResult:
        """Work out the taints ``node`` needs and write them if anything changed.

        Raises:
            ResolutionError: If pod readiness could not be determined; nothing is written
            PersistenceError: If the updated node could not be written
        """
        policy = self.policy

        try:
            result = self.reconciler.reconcile(node, policy)
        except ResolutionError as e:
            raise ResolutionError(
                f"Error calculating taints for node {node.name}", e.format_message()
            )

        if not result.changed:
            logger.debug(f"Node {node.name} is up to date")
            return result

        logger.info(
            f"Updating node taints: node={node.name} "
            f"added={result.changes.added} removed={result.changes.removed} "
            f"taintless={result.taintless} first_time_ready={result.first_time_ready}"
        )
        if self.dry_run:
            logger.info(f"Dry run: not writing node {node.name}")
            return result

        try:
            self.updater.update_node(result.node)
        except PersistenceError:
            raise
        except ReadinessGateError as e:
            raise PersistenceError(f"Failed to update node {node.name}", e.format_message())

        try:
            self.emitter.emit(
                result.node.name,
                EVENT_TYPE_NORMAL,
                EVENT_REASON_TAINTS_CHANGED,
                format_event_message(result),
            )
        except ReadinessGateError as e:
            # Events are best effort once the node is written
            logger.warning(f"Failed to record event for node {node.name}: {e.message}")

        return result

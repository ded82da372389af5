"""Readiness resolution for the pod a workload runs on a node."""

from typing import Protocol

from readiness_gate.exceptions import ReadinessGateError, ResolutionError
from readiness_gate.logging_config import get_logger
from readiness_gate.models.pod import PodSnapshot
from readiness_gate.models.policy import Workload

logger = get_logger(__name__)


class PodLister(Protocol):
    """Lists the pods of one namespace."""

    def list_pods(self, namespace: str) -> list[PodSnapshot]: ...


class ReadinessResolver:
    """Answers whether a workload's pod on a given node is ready."""

    def __init__(self, pod_lister: PodLister):
        """Initialize the resolver.

        Args:
            pod_lister: Source of pods, queried on every lookup
        """
        self.pod_lister = pod_lister

    def find_pod(self, node_name: str, workload: Workload) -> PodSnapshot | None:
        """Find the pod ``workload`` has bound to ``node_name``.

        At most one such pod exists on a healthy cluster; if there are more,
        the first one listed is used.

        Returns:
            The matching pod, or None if the workload has no pod on the node

        Raises:
            ResolutionError: If the pods cannot be listed
        """
        try:
            pods = self.pod_lister.list_pods(workload.namespace)
        except ResolutionError:
            raise
        except ReadinessGateError as e:
            raise ResolutionError(
                f"Failed to list pods in namespace {workload.namespace} for {workload}",
                e.format_message(),
            )

        for pod in pods:
            if pod.is_owned_by(workload.name) and pod.node_name == node_name:
                return pod
        return None

    def is_ready(self, node_name: str, workload: Workload) -> bool:
        """Return True if ``workload`` has a pod on ``node_name`` with all containers ready.

        A missing pod is reported as not ready.

        Raises:
            ResolutionError: If the pods cannot be listed
        """
        pod = self.find_pod(node_name, workload)
        if pod is None:
            logger.debug(f"No pod for {workload} on node {node_name}")
            return False

        logger.debug(f"Pod {pod.name} for {workload} on node {node_name} ready={pod.ready}")
        return pod.ready

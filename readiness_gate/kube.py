"""Kubernetes API adapters for pods, nodes and events."""

from collections.abc import Iterator
from datetime import datetime, timezone

from kubernetes import client, config, watch
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from readiness_gate.exceptions import KubernetesError, PersistenceError
from readiness_gate.logging_config import get_logger
from readiness_gate.models.node import NodeSnapshot
from readiness_gate.models.pod import PodSnapshot

logger = get_logger(__name__)

COMPONENT = "readiness-gate"
# Events about cluster-scoped objects such as nodes are recorded here
EVENT_NAMESPACE = "default"
# Connection refused, timeouts and dropped streams raised below the API layer
TRANSPORT_ERRORS = (HTTPError, OSError)


def load_kube_client(kubeconfig: str | None = None) -> client.CoreV1Api:
    """Load cluster credentials and return a CoreV1Api client.

    Uses ``kubeconfig`` if given, otherwise the in-cluster service account,
    falling back to the default kubeconfig.

    Raises:
        KubernetesError: If no configuration can be loaded
    """
    try:
        if kubeconfig:
            config.load_kube_config(config_file=kubeconfig)
        else:
            try:
                config.load_incluster_config()
                logger.debug("Loaded in-cluster configuration")
            except config.ConfigException:
                config.load_kube_config()
                logger.debug("Loaded default kubeconfig")
    except (config.ConfigException, OSError) as e:
        raise KubernetesError(
            f"Failed to load Kubernetes configuration: {e}",
            "Run inside the cluster, set KUBECONFIG, or pass --kubeconfig",
        )

    return client.CoreV1Api()


class KubeCluster:
    """Pod lister, node updater and event emitter backed by CoreV1Api."""

    def __init__(self, api: client.CoreV1Api, request_timeout: float | None = 30):
        """Initialize the adapter.

        Args:
            api: Kubernetes core API client
            request_timeout: Seconds allowed per API request, None for no limit
        """
        self.api = api
        self.request_timeout = request_timeout

    def list_pods(self, namespace: str) -> list[PodSnapshot]:
        """List pods in ``namespace``.

        Raises:
            KubernetesError: If the API call fails or the API server is unreachable
        """
        try:
            pods = self.api.list_namespaced_pod(namespace, _request_timeout=self.request_timeout)
        except ApiException as e:
            raise KubernetesError(
                f"Failed to list pods in namespace {namespace}: {e.status} {e.reason}"
            )
        except TRANSPORT_ERRORS as e:
            raise KubernetesError(f"Failed to list pods in namespace {namespace}", str(e))
        return [PodSnapshot.from_kubernetes(pod) for pod in pods.items]

    def get_node(self, name: str) -> NodeSnapshot:
        """Read a single node.

        Raises:
            KubernetesError: If the node cannot be read
        """
        try:
            node = self.api.read_node(name, _request_timeout=self.request_timeout)
        except ApiException as e:
            if e.status == 404:
                raise KubernetesError(
                    f"Node not found: {name}", "Check the name with kubectl get nodes"
                )
            raise KubernetesError(f"Failed to read node {name}: {e.status} {e.reason}")
        except TRANSPORT_ERRORS as e:
            raise KubernetesError(f"Failed to read node {name}", str(e))
        return NodeSnapshot.from_kubernetes(node)

    def list_nodes(self) -> list[NodeSnapshot]:
        """List all nodes in the cluster.

        Raises:
            KubernetesError: If the API call fails
        """
        try:
            nodes = self.api.list_node(_request_timeout=self.request_timeout)
        except ApiException as e:
            raise KubernetesError(f"Failed to list nodes: {e.status} {e.reason}")
        except TRANSPORT_ERRORS as e:
            raise KubernetesError("Failed to list nodes", str(e))
        return [NodeSnapshot.from_kubernetes(node) for node in nodes.items]

    def watch_nodes(self, timeout_seconds: int = 300) -> Iterator[tuple[str, NodeSnapshot]]:
        """Stream node changes as ``(event type, node)`` pairs.

        The stream ends after ``timeout_seconds``, or early when the API server
        reports the watch expired (410 Gone); callers loop to keep watching.

        Raises:
            KubernetesError: If the watch fails for any other reason
        """
        w = watch.Watch()
        try:
            for event in w.stream(self.api.list_node, timeout_seconds=timeout_seconds):
                yield event["type"], NodeSnapshot.from_kubernetes(event["object"])
        except ApiException as e:
            if e.status == 410:
                logger.info("Node watch expired, restarting")
                return
            raise KubernetesError(f"Node watch failed: {e.status} {e.reason}")
        except TRANSPORT_ERRORS as e:
            raise KubernetesError("Node watch failed", str(e))
        finally:
            w.stop()

    def update_node(self, node: NodeSnapshot) -> None:
        """Patch the node's taints and owned annotations.

        Raises:
            PersistenceError: If the patch is rejected or cannot be sent
        """
        try:
            self.api.patch_node(node.name, node.to_patch(), _request_timeout=self.request_timeout)
        except ApiException as e:
            raise PersistenceError(
                f"Failed to update node {node.name}: {e.status} {e.reason}", e.body
            )
        except TRANSPORT_ERRORS as e:
            raise PersistenceError(f"Failed to update node {node.name}", str(e))

    def emit(self, subject: str, kind: str, reason: str, message: str) -> None:
        """Record an event on the node named ``subject``.

        Raises:
            KubernetesError: If the event cannot be created
        """
        now = datetime.now(timezone.utc)
        body = client.CoreV1Event(
            metadata=client.V1ObjectMeta(generate_name=f"{subject}."),
            # Nodes have no namespace; the node name stands in for its uid
            involved_object=client.V1ObjectReference(kind="Node", name=subject, uid=subject),
            type=kind,
            reason=reason,
            message=message,
            source=client.V1EventSource(component=COMPONENT),
            first_timestamp=now,
            last_timestamp=now,
            count=1,
        )
        try:
            self.api.create_namespaced_event(
                EVENT_NAMESPACE, body, _request_timeout=self.request_timeout
            )
        except ApiException as e:
            raise KubernetesError(f"Failed to record event for {subject}: {e.status} {e.reason}")
        except TRANSPORT_ERRORS as e:
            raise KubernetesError(f"Failed to record event for {subject}", str(e))

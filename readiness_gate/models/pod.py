"""Pod snapshot model consumed by the readiness resolver."""

from pydantic import BaseModel, Field


class PodSnapshot(BaseModel):
    """A pod reduced to its owners, its node binding and container readiness."""

    name: str
    namespace: str
    node_name: str | None = None  # None until the pod is scheduled
    owner_names: list[str] = Field(default_factory=list)
    container_ready: list[bool] = Field(default_factory=list)

    @property
    def ready(self) -> bool:
        """True when every container reports ready; no statuses counts as ready."""
        return all(self.container_ready)

    def is_owned_by(self, name: str) -> bool:
        return name in self.owner_names

    @classmethod
    def from_kubernetes(cls, pod) -> "PodSnapshot":
        """Parse from a ``kubernetes.client.V1Pod``."""
        owners = pod.metadata.owner_references or []
        statuses = (pod.status.container_statuses if pod.status else None) or []
        return cls(
            name=pod.metadata.name,
            namespace=pod.metadata.namespace,
            node_name=pod.spec.node_name if pod.spec else None,
            owner_names=[o.name for o in owners],
            container_ready=[bool(s.ready) for s in statuses],
        )

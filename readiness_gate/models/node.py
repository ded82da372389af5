"""Node snapshot model."""

from pydantic import BaseModel, Field

from readiness_gate.models.taint import Taint, is_owned


class NodeSnapshot(BaseModel):
    """The parts of a Kubernetes node the reconciler reads and writes."""

    name: str
    labels: dict[str, str] = Field(default_factory=dict)
    taints: list[Taint] = Field(default_factory=list)
    annotations: dict[str, str] = Field(default_factory=dict)

    def owned_taints(self) -> list[Taint]:
        """Return the taints carrying this controller's prefix, in node order."""
        return [t for t in self.taints if t.owned]

    def to_patch(self) -> dict:
        """Build a patch body replacing the node's taints.

        Only annotations under this controller's prefix are included; the
        annotation map is merged, so others are left as the cluster has them.
        """
        # A null list removes the field entirely
        patch = {"spec": {"taints": [t.to_dict() for t in self.taints] or None}}
        annotations = {k: v for k, v in self.annotations.items() if is_owned(k)}
        if annotations:
            patch["metadata"] = {"annotations": annotations}
        return patch

    @classmethod
    def from_kubernetes(cls, node) -> "NodeSnapshot":
        """Parse from a ``kubernetes.client.V1Node``."""
        spec_taints = (node.spec.taints if node.spec else None) or []
        return cls(
            name=node.metadata.name,
            labels=node.metadata.labels or {},
            taints=[Taint.from_kubernetes(t) for t in spec_taints],
            annotations=node.metadata.annotations or {},
        )

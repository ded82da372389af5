"""Taint values and the ownership rules for taints this controller manages."""

from pydantic import BaseModel, ConfigDict, field_validator

TAINT_KEY_PREFIX = "readiness-gate.io"
NO_SCHEDULE = "NoSchedule"


def owned_taint_key(namespace: str, name: str) -> str:
    """Build the owned taint key for the workload ``namespace/name``.

    Namespaces are DNS labels and never contain a dot, so splitting the
    suffix at its first dot always recovers the original pair.
    """
    return f"{TAINT_KEY_PREFIX}/{namespace}.{name}"


def is_owned(key: str) -> bool:
    """Return True if ``key`` carries this controller's prefix.

    The bare prefix is also owned: earlier releases used it as one shared
    key with the workload in the taint value.
    """
    return key == TAINT_KEY_PREFIX or key.startswith(TAINT_KEY_PREFIX + "/")


class Taint(BaseModel):
    """Kubernetes node taint."""

    model_config = ConfigDict(frozen=True)

    key: str
    value: str | None = None
    effect: str = NO_SCHEDULE  # NoSchedule, PreferNoSchedule, NoExecute

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        """Validate taint key is not empty."""
        if not v:
            raise ValueError("taint key cannot be empty")
        return v

    @field_validator("effect")
    @classmethod
    def validate_effect(cls, v: str) -> str:
        """Validate taint effect is one of the allowed values."""
        allowed = [NO_SCHEDULE, "PreferNoSchedule", "NoExecute"]
        if v not in allowed:
            raise ValueError(f"effect must be one of {allowed}, got {v}")
        return v

    @property
    def owned(self) -> bool:
        return is_owned(self.key)

    def to_dict(self) -> dict:
        """Convert to the Kubernetes API taint format."""
        result = {"key": self.key, "effect": self.effect}
        if self.value:
            result["value"] = self.value
        return result

    @classmethod
    def from_kubernetes(cls, taint) -> "Taint":
        """Parse from a ``kubernetes.client.V1Taint``."""
        return cls(key=taint.key, value=taint.value or None, effect=taint.effect)

    @classmethod
    def for_workload(cls, namespace: str, name: str) -> "Taint":
        """Build the NoSchedule taint owned on behalf of one workload."""
        return cls(key=owned_taint_key(namespace, name), effect=NO_SCHEDULE)

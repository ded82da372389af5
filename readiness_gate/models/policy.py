"""Policy configuration: which workloads gate which nodes."""

import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from readiness_gate.exceptions import ConfigurationError
from readiness_gate.models.taint import owned_taint_key

# RFC 1123 label, the format Kubernetes requires for namespace names
NAMESPACE_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
# Kubernetes qualified name, the format of DaemonSet and other object names
NAME_PATTERN = re.compile(r"^[A-Za-z0-9]([-A-Za-z0-9_.]*[A-Za-z0-9])?$")
# Taint key names (after the prefix) are limited to 63 characters
MAX_TAINT_NAME_LENGTH = 63


def selector_matches(selector: dict[str, str], labels: dict[str, str]) -> bool:
    """Return True if every key/value pair of ``selector`` is present in ``labels``."""
    return all(key in labels and labels[key] == value for key, value in selector.items())


class Workload(BaseModel):
    """A per-node agent identified by its managing controller."""

    model_config = ConfigDict(frozen=True)

    name: str
    namespace: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate workload name can be used in a taint key."""
        if not v:
            raise ValueError("workload name cannot be empty")
        if not NAME_PATTERN.match(v):
            raise ValueError(
                f"workload name '{v}' must consist of alphanumerics, '-', '_' or '.', "
                "and start and end with an alphanumeric"
            )
        return v

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        """Validate namespace is a DNS label."""
        if not v:
            raise ValueError("workload namespace cannot be empty")
        if len(v) > 63 or not NAMESPACE_PATTERN.match(v):
            raise ValueError(
                f"namespace '{v}' must be a DNS label: lowercase alphanumerics and "
                "hyphens, at most 63 characters"
            )
        return v

    @model_validator(mode="after")
    def validate_taint_key_length(self) -> "Workload":
        """Reject workloads whose taint key would exceed the name length limit."""
        name_part = f"{self.namespace}.{self.name}"
        if len(name_part) > MAX_TAINT_NAME_LENGTH:
            raise ValueError(
                f"workload '{self}' is too long for a taint key: '{name_part}' has "
                f"{len(name_part)} characters, at most {MAX_TAINT_NAME_LENGTH} are allowed"
            )
        return self

    @property
    def taint_key(self) -> str:
        return owned_taint_key(self.namespace, self.name)

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class Policy(BaseModel):
    """Immutable reconciliation policy.

    Field aliases follow the on-disk configuration format.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    workloads: tuple[Workload, ...] = Field(default=(), alias="daemonsets")
    include: dict[str, str] = Field(default_factory=dict, alias="nodeSelector")
    exclude: dict[str, str] = Field(default_factory=dict, alias="nodeRejecter")
    sweep_out_of_scope: bool = Field(default=False, alias="sweepOutOfScope")
    mark_first_ready: bool = Field(default=True, alias="markFirstReady")

    @field_validator("include", "exclude", mode="before")
    @classmethod
    def default_empty_selector(cls, v):
        """Treat a null selector as empty."""
        return v or {}

    @field_validator("workloads")
    @classmethod
    def validate_unique_workloads(cls, v: tuple[Workload, ...]) -> tuple[Workload, ...]:
        """Reject workloads listed more than once."""
        seen = set()
        for workload in v:
            if workload in seen:
                raise ValueError(f"workload '{workload}' is listed more than once")
            seen.add(workload)
        return v

    def in_scope(self, labels: dict[str, str]) -> bool:
        """Return True if a node with ``labels`` is gated by this policy.

        An empty include selector selects every node; an empty exclude
        selector rejects none.
        """
        if not selector_matches(self.include, labels):
            return False
        if self.exclude and selector_matches(self.exclude, labels):
            return False
        return True

    @classmethod
    def load(cls, path: str | Path) -> "Policy":
        """Load policy from a YAML file.

        Raises:
            ConfigurationError: If the file is missing, unparsable or invalid
        """
        import yaml

        path = Path(path)
        if not path.exists():
            raise ConfigurationError(
                f"Policy file not found: {path}",
                f"Expected location: {path.absolute()}",
            )

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse policy file {path}", str(e))

        if data is None:
            raise ConfigurationError(
                f"Policy file is empty: {path}",
                "List at least the daemonsets that should gate nodes.",
            )
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Policy file {path} must contain a mapping, got {type(data).__name__}"
            )

        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid policy file {path}", str(e))

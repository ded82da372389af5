"""Pytest configuration and shared fixtures."""

import pytest
from hypothesis import Verbosity, settings

# Configure Hypothesis for property-based testing
settings.register_profile("default", max_examples=100, verbosity=Verbosity.normal)
settings.register_profile("ci", max_examples=1000, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=10, verbosity=Verbosity.verbose)

# Load the default profile
settings.load_profile("default")


@pytest.fixture
def sample_policy_data():
    """Sample policy file contents."""
    return {
        "daemonsets": [
            {"name": "fluentd", "namespace": "kube-system"},
            {"name": "calico-node", "namespace": "calico-system"},
        ],
        "nodeSelector": {"role": "worker"},
        "nodeRejecter": {"node-role.kubernetes.io/control-plane": ""},
    }


@pytest.fixture
def policy_file(tmp_path, sample_policy_data):
    """Policy file written to a temporary directory."""
    import yaml

    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(sample_policy_data))
    return path

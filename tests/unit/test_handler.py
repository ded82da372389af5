"""Unit tests for the node handler."""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
from urllib3.exceptions import MaxRetryError

from readiness_gate.exceptions import KubernetesError, PersistenceError, ResolutionError
from readiness_gate.handler import NodeHandler, format_event_message
from readiness_gate.kube import KubeCluster
from readiness_gate.models import NodeSnapshot, Policy, Taint, Workload
from readiness_gate.readiness import ReadinessResolver
from readiness_gate.reconciler import (
    FIRST_READY_ANNOTATION,
    ReconcileResult,
    TaintChanges,
    TaintReconciler,
)

FLUENTD = Workload(namespace="kube-system", name="fluentd")
FLUENTD_KEY = "readiness-gate.io/kube-system.fluentd"


class StaticResolver:
    """Resolver reporting a fixed set of workloads as ready."""

    def __init__(self, ready=(), error=None):
        self.ready = set(ready)
        self.error = error

    def is_ready(self, node_name, workload):
        if self.error:
            raise self.error
        return workload in self.ready


def make_handler(ready=(), error=None, policy=None, dry_run=False):
    reconciler = TaintReconciler(
        StaticResolver(ready, error),
        clock=lambda: datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
    )
    updater = Mock()
    emitter = Mock()
    policy = policy or Policy(workloads=[FLUENTD], include={"role": "worker"})
    handler = NodeHandler(reconciler, updater, emitter, policy, dry_run=dry_run)
    return handler, updater, emitter


def worker_node(*taints):
    return NodeSnapshot(name="worker-1", labels={"role": "worker"}, taints=list(taints))


def test_changed_node_is_written_and_reported():
    handler, updater, emitter = make_handler()

    result = handler.handle_node(worker_node())

    updater.update_node.assert_called_once_with(result.node)
    emitter.emit.assert_called_once()
    subject, kind, reason, message = emitter.emit.call_args[0]
    assert subject == "worker-1"
    assert kind == "Normal"
    assert reason == "TaintsChanged"
    assert f"Taints added: [{FLUENTD_KEY}]" in message
    assert "Taints removed: []" in message


def test_unchanged_node_is_not_written():
    handler, updater, emitter = make_handler()
    node = worker_node(Taint.for_workload("kube-system", "fluentd"))

    result = handler.handle_node(node)

    assert not result.changed
    updater.update_node.assert_not_called()
    emitter.emit.assert_not_called()


def test_second_pass_is_a_no_op():
    handler, updater, _ = make_handler()

    first = handler.handle_node(worker_node())
    second = handler.handle_node(first.node)

    assert not second.changed
    assert updater.update_node.call_count == 1


def test_resolution_error_aborts_before_write():
    handler, updater, emitter = make_handler(error=ResolutionError("pods unavailable"))

    with pytest.raises(ResolutionError) as exc_info:
        handler.handle_node(worker_node())

    assert "worker-1" in exc_info.value.message
    updater.update_node.assert_not_called()
    emitter.emit.assert_not_called()


def test_persistence_error_propagates_without_event():
    handler, updater, emitter = make_handler()
    updater.update_node.side_effect = PersistenceError("conflict")

    with pytest.raises(PersistenceError):
        handler.handle_node(worker_node())

    emitter.emit.assert_not_called()


def test_other_update_errors_become_persistence_errors():
    handler, updater, _ = make_handler()
    updater.update_node.side_effect = KubernetesError("api down")

    with pytest.raises(PersistenceError) as exc_info:
        handler.handle_node(worker_node())

    assert "api down" in exc_info.value.details


def test_event_failure_does_not_fail_the_pass():
    handler, updater, emitter = make_handler()
    emitter.emit.side_effect = KubernetesError("events forbidden")

    result = handler.handle_node(worker_node())

    assert result.changes.added == [FLUENTD_KEY]
    updater.update_node.assert_called_once()


def test_dry_run_does_not_write():
    handler, updater, emitter = make_handler(dry_run=True)

    result = handler.handle_node(worker_node())

    assert result.changes.added == [FLUENTD_KEY]
    updater.update_node.assert_not_called()
    emitter.emit.assert_not_called()


def test_update_policy_applies_to_next_pass():
    handler, _, _ = make_handler()
    handler.update_policy(Policy(workloads=[], include={"role": "worker"}))

    result = handler.handle_node(worker_node(Taint.for_workload("kube-system", "fluentd")))

    assert result.changes.removed == [FLUENTD_KEY]


def test_format_event_message():
    node = NodeSnapshot(
        name="worker-1", annotations={FIRST_READY_ANNOTATION: "2024-01-02T03:04:05Z"}
    )
    result = ReconcileResult(
        node=node, changes=TaintChanges(removed=[FLUENTD_KEY]), first_ready_marked=True
    )

    assert format_event_message(result) == (
        f"Taints added: [], Taints removed: [{FLUENTD_KEY}], "
        'TaintLess: true, FirstTimeReady: "2024-01-02T03:04:05Z"'
    )


def test_format_event_message_separates_keys_with_spaces():
    other_key = "readiness-gate.io/kube-system.kube-proxy"
    result = ReconcileResult(
        node=NodeSnapshot(name="worker-1"),
        changes=TaintChanges(added=[FLUENTD_KEY, other_key]),
    )

    message = format_event_message(result)

    assert message.startswith(f"Taints added: [{FLUENTD_KEY} {other_key}], ")
    assert "'" not in message


def test_unreachable_api_server_aborts_before_write():
    api = Mock()
    api.list_namespaced_pod.side_effect = MaxRetryError(
        None, "/api/v1/namespaces/kube-system/pods", reason="Connection refused"
    )
    cluster = KubeCluster(api)
    reconciler = TaintReconciler(ReadinessResolver(cluster))
    updater = Mock()
    emitter = Mock()
    handler = NodeHandler(
        reconciler, updater, emitter, Policy(workloads=[FLUENTD], include={"role": "worker"})
    )

    with pytest.raises(ResolutionError) as exc_info:
        handler.handle_node(worker_node())

    assert "worker-1" in exc_info.value.message
    updater.update_node.assert_not_called()
    emitter.emit.assert_not_called()

"""Main CLI entry point for the readiness gate controller."""

import time
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from readiness_gate.exceptions import ReadinessGateError
from readiness_gate.logging_config import get_logger, setup_logging

app = typer.Typer(
    name="readiness-gate",
    help="Taint nodes until their per-node agents are ready",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)

CONFIG_OPTION = typer.Option(
    "config.yaml",
    "--config",
    "-c",
    envvar="READINESS_GATE_CONFIG",
    help="Path to the policy file",
)
KUBECONFIG_OPTION = typer.Option(
    None, "--kubeconfig", help="Path to kubeconfig (default: in-cluster, then ~/.kube/config)"
)
DRY_RUN_OPTION = typer.Option(False, "--dry-run", help="Compute changes without writing them")

# Seconds to wait before listing again after the API server could not be reached
WATCH_ERROR_DELAY = 5


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: str | None = typer.Option(None, "--log-file", help="Path to log file"),
):
    """Global options for all commands."""
    log_path = Path(log_file) if log_file else None
    setup_logging(verbose=verbose, log_file=log_path)
    logger.debug("Logging initialized")


def print_error(e: ReadinessGateError) -> None:
    console.print(f"[red]Error:[/red] {escape(e.message)}")
    if e.details:
        console.print(f"\n{escape(e.details)}")


def build_handler(config_path: str, kubeconfig: str | None, dry_run: bool):
    """Wire the policy, Kubernetes adapter, reconciler and handler together."""
    from readiness_gate.handler import NodeHandler
    from readiness_gate.kube import KubeCluster, load_kube_client
    from readiness_gate.models.policy import Policy
    from readiness_gate.readiness import ReadinessResolver
    from readiness_gate.reconciler import TaintReconciler

    policy = Policy.load(config_path)
    cluster = KubeCluster(load_kube_client(kubeconfig))
    reconciler = TaintReconciler(ReadinessResolver(cluster))
    handler = NodeHandler(reconciler, cluster, cluster, policy, dry_run=dry_run)
    return cluster, handler


@app.command()
def version() -> None:
    """Show version information."""
    from readiness_gate import __version__

    typer.echo(f"readiness-gate version {__version__}")


@app.command()
def validate_config(config: str = CONFIG_OPTION) -> None:
    """
    Validate a policy file and show what it gates.

    Lists every workload with the taint key it owns, and the node selectors.
    """
    from readiness_gate.models.policy import Policy

    try:
        policy = Policy.load(config)
    except ReadinessGateError as e:
        print_error(e)
        raise typer.Exit(code=1)

    table = Table(title="Gating Workloads")
    table.add_column("Namespace", style="cyan")
    table.add_column("Name", style="magenta")
    table.add_column("Taint Key", style="yellow")
    for workload in policy.workloads:
        table.add_row(workload.namespace, workload.name, workload.taint_key)
    console.print(table)

    include = ", ".join(f"{k}={v}" for k, v in policy.include.items()) or "(all nodes)"
    exclude = ", ".join(f"{k}={v}" for k, v in policy.exclude.items()) or "(none)"
    console.print(f"\n[bold]Node selector:[/bold] {include}")
    console.print(f"[bold]Node rejecter:[/bold] {exclude}")
    console.print(f"[bold]Sweep out-of-scope nodes:[/bold] {policy.sweep_out_of_scope}")
    console.print(f"[bold]Mark first ready:[/bold] {policy.mark_first_ready}")
    console.print("\n[green]✓ Policy is valid[/green]")


@app.command()
def reconcile(
    node_name: str | None = typer.Argument(None, help="Node to reconcile"),
    all_nodes: bool = typer.Option(False, "--all", "-a", help="Reconcile every node"),
    config: str = CONFIG_OPTION,
    kubeconfig: str | None = KUBECONFIG_OPTION,
    dry_run: bool = DRY_RUN_OPTION,
) -> None:
    """
    Reconcile node taints once.

    Examples:
        # Reconcile a single node
        readiness-gate reconcile worker-1

        # Show what would change on every node
        readiness-gate reconcile --all --dry-run
    """
    if not node_name and not all_nodes:
        console.print("[red]Error:[/red] Give a node name or --all")
        raise typer.Exit(code=1)

    try:
        cluster, handler = build_handler(config, kubeconfig, dry_run)
        nodes = cluster.list_nodes() if all_nodes else [cluster.get_node(node_name)]
    except ReadinessGateError as e:
        print_error(e)
        raise typer.Exit(code=1)

    table = Table(title="Dry Run" if dry_run else "Reconciled Nodes")
    table.add_column("Node", style="cyan")
    table.add_column("In Scope")
    table.add_column("Added", style="red")
    table.add_column("Removed", style="green")
    table.add_column("Taintless")

    failures = 0
    for node in sorted(nodes, key=lambda n: n.name):
        try:
            result = handler.handle_node(node)
        except ReadinessGateError as e:
            failures += 1
            logger.error(f"Failed to reconcile node {node.name}: {e.message}")
            table.add_row(node.name, "?", f"[red]error: {escape(e.message)}[/red]", "", "")
            continue

        table.add_row(
            node.name,
            "Yes" if result.in_scope else "No",
            ", ".join(result.changes.added) or "-",
            ", ".join(result.changes.removed) or "-",
            "Yes" if result.taintless else "No",
        )

    console.print(table)
    if failures:
        console.print(f"\n[red]✗ {failures} node(s) failed to reconcile[/red]")
        raise typer.Exit(code=1)


@app.command()
def watch(
    config: str = CONFIG_OPTION,
    kubeconfig: str | None = KUBECONFIG_OPTION,
    dry_run: bool = DRY_RUN_OPTION,
    resync_seconds: int = typer.Option(
        300, "--resync", help="Seconds between full resyncs of every node"
    ),
) -> None:
    """
    Watch nodes and reconcile each one as it changes.

    Every node is also reconciled once per resync period, which picks up pod
    readiness changes that do not touch the node object.
    """
    try:
        cluster, handler = build_handler(config, kubeconfig, dry_run)
    except ReadinessGateError as e:
        print_error(e)
        raise typer.Exit(code=1)

    def handle(node):
        try:
            handler.handle_node(node)
        except ReadinessGateError as e:
            logger.error(f"Failed to reconcile node {node.name}: {e.message}")

    console.print(f"[bold cyan]Watching nodes[/bold cyan] (resync every {resync_seconds}s)")
    try:
        while True:
            try:
                for node in cluster.list_nodes():
                    handle(node)
                for event_type, node in cluster.watch_nodes(timeout_seconds=resync_seconds):
                    if event_type == "DELETED":
                        continue
                    handle(node)
            except ReadinessGateError as e:
                logger.error(f"Node watch error: {e.format_message()}")
                time.sleep(WATCH_ERROR_DELAY)
    except KeyboardInterrupt:
        console.print("\n[yellow]Watch interrupted by user[/yellow]")
        raise typer.Exit(code=130)


if __name__ == "__main__":
    app()

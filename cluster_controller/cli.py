"""Main CLI entry point for the cluster controller."""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from cluster_controller.exceptions import ClusterControllerError, KubernetesError
from cluster_controller.logging_config import get_logger, setup_logging

app = typer.Typer(
    name="cluster-ctl",
    help="Render and diff Kafka clusters managed on Kubernetes",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_level: str = typer.Option(
        "WARNING", "--log-level", help="Console log level (DEBUG, INFO, WARNING, ERROR)"
    ),
    log_file: str | None = typer.Option(None, "--log-file", help="Path to log file"),
):
    """Global options for all commands."""
    log_path = Path(log_file) if log_file else None
    try:
        setup_logging(level=log_level, verbose=verbose, log_file=log_path)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--log-level") from e
    logger.debug("Logging initialized")


@app.command()
def version() -> None:
    """Show version information."""
    from cluster_controller import __version__

    typer.echo(f"cluster-controller version {__version__}")


def _load_cluster(path: str, namespace: str | None):
    from cluster_controller.models.kafka import KafkaCluster
    from cluster_controller.resources.manifests import config_map_from_manifest, load_manifest

    config_map = config_map_from_manifest(load_manifest(path))
    return KafkaCluster.from_config_map(config_map, namespace=namespace)


@app.command()
def render(
    config: str = typer.Argument(..., help="Path to the cluster ConfigMap manifest"),
    namespace: str = typer.Option(
        "default", "--namespace", "-n", help="Namespace used when the ConfigMap has none"
    ),
    is_openshift: bool = typer.Option(
        False, "--openshift", help="Generate resources for OpenShift"
    ),
    output: str | None = typer.Option(
        None, "--output", "-o", help="Write manifests to this file instead of stdout"
    ),
) -> None:
    """
    Render the Kubernetes resources of a cluster.

    Reads the cluster ConfigMap and prints the metrics ConfigMap, client
    Service, headless Service and StatefulSet as a YAML stream.
    """
    from cluster_controller.resources.manifests import dump_manifests, render_manifests

    try:
        cluster = _load_cluster(config, namespace)
        manifests = dump_manifests(render_manifests(cluster, is_openshift))

        if output:
            Path(output).write_text(manifests)
            console.print(f"[green]✓[/green] Wrote resources of {cluster.identity} to {output}")
        else:
            typer.echo(manifests, nl=False)
    except ClusterControllerError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    except Exception as e:
        logger.error(f"Unexpected error during render: {e}", exc_info=True)
        console.print(f"[red]Unexpected error:[/red] {e}")
        console.print("\nRun with --verbose --log-file debug.log for more details")
        raise typer.Exit(code=1)


def fetch_live_state(namespace: str, cluster_name: str):
    """Read the live StatefulSet and metrics ConfigMap of a cluster.

    Args:
        namespace: Namespace of the cluster
        cluster_name: Name of the cluster

    Returns:
        Tuple of (StatefulSet or None, metrics ConfigMap or None)

    Raises:
        KubernetesError: If the API server cannot be reached or refuses the request
    """
    from kubernetes import client, config
    from kubernetes.client.rest import ApiException

    from cluster_controller.models.identity import metrics_config_name, primary_name

    try:
        config.load_kube_config()
    except Exception as e:
        raise KubernetesError(
            f"Failed to load kubeconfig: {e}",
            "Make sure a kubeconfig is available at ~/.kube/config or in $KUBECONFIG",
        ) from e

    def read(reader, name):
        try:
            return reader(name, namespace)
        except ApiException as e:
            if e.status == 404:
                logger.debug(f"{name} not found in namespace {namespace}")
                return None
            raise KubernetesError(f"Failed to read {namespace}/{name}", str(e)) from e

    stateful_set = read(client.AppsV1Api().read_namespaced_stateful_set, primary_name(cluster_name))
    metrics = read(
        client.CoreV1Api().read_namespaced_config_map, metrics_config_name(cluster_name)
    )
    return stateful_set, metrics


@app.command()
def diff(
    config: str = typer.Argument(..., help="Path to the desired cluster ConfigMap manifest"),
    against: str | None = typer.Option(
        None,
        "--against",
        "-a",
        help="Compare with this ConfigMap manifest instead of the live cluster",
    ),
    namespace: str = typer.Option(
        "default", "--namespace", "-n", help="Namespace used when the ConfigMap has none"
    ),
) -> None:
    """
    Show which actions are needed to reach the desired cluster configuration.

    By default the live StatefulSet and metrics ConfigMap are read from the
    cluster in the current kubeconfig context. Nothing is changed.

    Examples:
        # Compare with the running cluster
        cluster-ctl diff my-cluster.yaml

        # Compare two configurations
        cluster-ctl diff new.yaml --against old.yaml
    """
    from cluster_controller.models.diff import diff as diff_clusters
    from cluster_controller.models.kafka import KafkaCluster

    try:
        desired = _load_cluster(config, namespace)

        if against:
            current = _load_cluster(against, namespace)
        else:
            stateful_set, metrics = fetch_live_state(desired.namespace, desired.cluster_name)
            current = None
            if stateful_set is not None:
                current = KafkaCluster.from_stateful_set(
                    stateful_set, desired.namespace, desired.cluster_name
                ).with_metrics_config_map(metrics)

        result = diff_clusters(current, desired)
    except ClusterControllerError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    except Exception as e:
        logger.error(f"Unexpected error during diff: {e}", exc_info=True)
        console.print(f"[red]Unexpected error:[/red] {e}")
        console.print("\nRun with --verbose --log-file debug.log for more details")
        raise typer.Exit(code=1)

    table = Table(title=f"Changes for cluster {desired.identity}")
    table.add_column("Change", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Scale up", "yes" if result.scale_up else "no")
    table.add_row("Scale down", "yes" if result.scale_down else "no")
    table.add_row("Rolling update", "yes" if result.rolling_update else "no")
    table.add_row("Workload changed", "yes" if result.workload_changed else "no")
    table.add_row("Metrics changed", "yes" if result.metrics_changed else "no")
    table.add_row("Build integration", result.build_integration_diff.value)
    console.print(table)

    if result.is_noop:
        console.print("\n[green]✓ Cluster is up to date[/green]")
    else:
        console.print(f"\n[yellow]Actions:[/yellow] {', '.join(result.actions())}")


if __name__ == "__main__":
    app()

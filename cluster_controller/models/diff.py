"""Change classification between two states of a Kafka cluster.

The categories are evaluated over disjoint field sets so that, for example,
a metrics-only change never restarts broker pods:

- scale: ``replicas``
- pod template: image, probe timings and broker environment
- metrics: the metrics ConfigMap content
- build integration: delegated to a comparator
"""

from kubernetes.client import V1ConfigMap, V1StatefulSet
from pydantic import BaseModel, ConfigDict

from cluster_controller.build_integration import (
    BuildIntegrationComparator,
    BuildIntegrationDiff,
    compare_build_integration,
)
from cluster_controller.logging_config import get_logger
from cluster_controller.models.kafka import UNKNOWN, KafkaCluster

logger = get_logger(__name__)

POD_TEMPLATE_FIELDS = (
    "image",
    "healthcheck_initial_delay",
    "healthcheck_timeout",
    "zookeeper_connect",
    "default_replication_factor",
    "offsets_topic_replication_factor",
    "transaction_state_log_replication_factor",
)


class ClusterDiffResult(BaseModel):
    """Actions needed to move a cluster from its current to its desired state."""

    model_config = ConfigDict(frozen=True)

    scale_up: bool = False
    scale_down: bool = False
    rolling_update: bool = False
    # Always equal to rolling_update for now; kept separate for workload
    # changes that can be patched without restarting pods
    workload_changed: bool = False
    metrics_changed: bool = False
    build_integration_diff: BuildIntegrationDiff = BuildIntegrationDiff.NONE

    @property
    def is_noop(self) -> bool:
        return not self.actions()

    def actions(self) -> list[str]:
        """Names of the actions the reconciliation loop has to take, in apply order."""
        actions = []
        if self.scale_down:
            actions.append("scale-down")
        if self.workload_changed:
            actions.append("patch-workload")
        if self.rolling_update:
            actions.append("rolling-update")
        if self.metrics_changed:
            actions.append("update-metrics")
        if self.build_integration_diff is not BuildIntegrationDiff.NONE:
            actions.append(f"build-integration-{self.build_integration_diff.value}")
        if self.scale_up:
            actions.append("scale-up")
        return actions


def _metrics_changed(current: KafkaCluster, desired: KafkaCluster) -> bool:
    if current.metrics_config is UNKNOWN or desired.metrics_config is UNKNOWN:
        logger.debug(
            f"Metrics configuration of {desired.identity} is unknown on one side, "
            "not comparing it"
        )
        return False
    return current.metrics_config != desired.metrics_config


def diff(
    current: KafkaCluster | None,
    desired: KafkaCluster,
    comparator: BuildIntegrationComparator = compare_build_integration,
) -> ClusterDiffResult:
    """Classify the changes between the current and the desired cluster.

    Args:
        current: Previously applied or live-reconstructed cluster, or None
            when nothing is running yet
        desired: The cluster as it should be
        comparator: Classifies build integration changes

    Returns:
        The diff result; every flag is off when nothing changed
    """
    if current is None:
        logger.info(f"No live resources for cluster {desired.identity}, everything is new")
        return ClusterDiffResult(
            scale_up=True,
            rolling_update=True,
            workload_changed=True,
            metrics_changed=desired.metrics_enabled,
            build_integration_diff=comparator(None, desired.build_integration),
        )

    scale_up = desired.replicas > current.replicas
    scale_down = desired.replicas < current.replicas
    if scale_up or scale_down:
        logger.debug(
            f"Cluster {desired.identity} replicas change from {current.replicas} "
            f"to {desired.replicas}"
        )

    changed = [f for f in POD_TEMPLATE_FIELDS if getattr(current, f) != getattr(desired, f)]
    for field in changed:
        logger.debug(
            f"Cluster {desired.identity} {field} changes from {getattr(current, field)!r} "
            f"to {getattr(desired, field)!r}"
        )
    rolling_update = bool(changed)

    if current.storage != desired.storage:
        logger.warning(
            f"Storage of cluster {desired.identity} changed from {current.storage.type} "
            f"to {desired.storage.type}; storage cannot be changed on a running cluster"
        )

    result = ClusterDiffResult(
        scale_up=scale_up,
        scale_down=scale_down,
        rolling_update=rolling_update,
        workload_changed=rolling_update,
        metrics_changed=_metrics_changed(current, desired),
        build_integration_diff=comparator(current.build_integration, desired.build_integration),
    )

    if result.is_noop:
        logger.debug(f"Cluster {desired.identity} is up to date")
    else:
        logger.info(f"Cluster {desired.identity} needs: {', '.join(result.actions())}")
    return result


def diff_resources(
    current: KafkaCluster,
    metrics_config_map: V1ConfigMap | None,
    stateful_set: V1StatefulSet,
    comparator: BuildIntegrationComparator = compare_build_integration,
) -> ClusterDiffResult:
    """Classify the changes needed to reach the state described by resources.

    The StatefulSet is read back into a model for the same cluster and the
    metrics ConfigMap content is attached to it; a missing ConfigMap means no
    metrics.

    Args:
        current: The cluster as it is now
        metrics_config_map: Metrics ConfigMap of the desired state, or None
        stateful_set: StatefulSet of the desired state
        comparator: Classifies build integration changes

    Returns:
        The diff result

    Raises:
        ReconstructionError: If the StatefulSet cannot be read back
    """
    desired = KafkaCluster.from_stateful_set(
        stateful_set, current.namespace, current.cluster_name
    ).with_metrics_config_map(metrics_config_map)
    return diff(current, desired, comparator)

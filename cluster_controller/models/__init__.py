"""Data models for Kafka cluster configuration and change classification."""

from cluster_controller.models.diff import ClusterDiffResult, diff, diff_resources
from cluster_controller.models.identity import (
    ClusterIdentity,
    cluster_labels,
    headless_name,
    metrics_config_name,
    primary_name,
)
from cluster_controller.models.kafka import UNKNOWN, KafkaCluster
from cluster_controller.models.storage import Storage

__all__ = [
    "ClusterDiffResult",
    "ClusterIdentity",
    "KafkaCluster",
    "Storage",
    "UNKNOWN",
    "cluster_labels",
    "diff",
    "diff_resources",
    "headless_name",
    "metrics_config_name",
    "primary_name",
]

"""Cluster identity, derived resource names and the label schema.

Every resource generated for a cluster is named and labelled from the
``(namespace, cluster_name)`` pair alone, so the functions here must stay
pure: no randomness, no timestamps, no lookups.
"""

from pydantic import BaseModel, ConfigDict, field_validator

LABEL_CLUSTER = "strimzi.io/cluster"
LABEL_KIND = "strimzi.io/kind"
LABEL_NAME = "strimzi.io/name"

KAFKA_CLUSTER_KIND = "kafka-cluster"

NAME_SUFFIX = "-kafka"
HEADLESS_NAME_SUFFIX = NAME_SUFFIX + "-headless"
METRICS_CONFIG_SUFFIX = NAME_SUFFIX + "-metrics-config"


def primary_name(cluster_name: str) -> str:
    """Name of the StatefulSet and client Service of a cluster."""
    return cluster_name + NAME_SUFFIX


def headless_name(cluster_name: str) -> str:
    """Name of the headless Service publishing one DNS record per broker pod."""
    return cluster_name + HEADLESS_NAME_SUFFIX


def metrics_config_name(cluster_name: str) -> str:
    """Name of the ConfigMap holding the metrics exporter configuration."""
    return cluster_name + METRICS_CONFIG_SUFFIX


def cluster_labels(cluster_name: str, name: str) -> dict[str, str]:
    """Build the identifying labels of a resource.

    Args:
        cluster_name: Name of the cluster the resource belongs to
        name: The resource's own derived name

    Returns:
        Label dictionary with keys in sorted order
    """
    labels = {
        LABEL_CLUSTER: cluster_name,
        LABEL_KIND: KAFKA_CLUSTER_KIND,
        LABEL_NAME: name,
    }
    return dict(sorted(labels.items()))


class ClusterIdentity(BaseModel):
    """Namespace and name of a managed cluster."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    cluster_name: str

    @field_validator("namespace", "cluster_name")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Validate identity parts are not empty."""
        if not v:
            raise ValueError("cluster identity parts cannot be empty")
        return v

    @property
    def name(self) -> str:
        return primary_name(self.cluster_name)

    @property
    def headless_name(self) -> str:
        return headless_name(self.cluster_name)

    @property
    def metrics_config_name(self) -> str:
        return metrics_config_name(self.cluster_name)

    def labels(self, name: str | None = None) -> dict[str, str]:
        """Labels for a resource of this cluster.

        Args:
            name: Resource name; defaults to the StatefulSet name, which is
                also what both Services select on

        Returns:
            Label dictionary with keys in sorted order
        """
        return cluster_labels(self.cluster_name, name or self.name)

    def __str__(self) -> str:
        return f"{self.namespace}/{self.cluster_name}"

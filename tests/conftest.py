"""Pytest configuration and shared fixtures."""

import pytest
from hypothesis import Verbosity, settings
from kubernetes.client import V1ConfigMap, V1ObjectMeta

from cluster_controller.models.kafka import KafkaCluster

# Configure Hypothesis for property-based testing
settings.register_profile("default", max_examples=100, verbosity=Verbosity.normal)
settings.register_profile("ci", max_examples=1000, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=10, verbosity=Verbosity.verbose)

# Load the default profile
settings.load_profile("default")

NAMESPACE = "test"
CLUSTER = "foo"
REPLICAS = 3
IMAGE = "image"
HEALTH_DELAY = 120
HEALTH_TIMEOUT = 30
METRICS_CONFIG = '{"animal":"wombat"}'


def create_config_map(
    replicas=REPLICAS,
    image=IMAGE,
    healthcheck_delay=HEALTH_DELAY,
    healthcheck_timeout=HEALTH_TIMEOUT,
    metrics_config=METRICS_CONFIG,
    **extra,
) -> V1ConfigMap:
    """Build a cluster ConfigMap the way it is stored on the platform (string values)."""
    data = {
        "kafka-nodes": str(replicas),
        "kafka-image": image,
        "kafka-healthcheck-delay": str(healthcheck_delay),
        "kafka-healthcheck-timeout": str(healthcheck_timeout),
    }
    if metrics_config is not None:
        data["kafka-metrics-config"] = metrics_config
    data.update(extra)

    return V1ConfigMap(
        api_version="v1",
        kind="ConfigMap",
        metadata=V1ObjectMeta(
            name=CLUSTER,
            namespace=NAMESPACE,
            labels={"strimzi.io/kind": "cluster", "strimzi.io/type": "kafka"},
        ),
        data=data,
    )


@pytest.fixture
def make_config_map():
    """Factory for cluster ConfigMaps, defaulting to the reference cluster."""
    return create_config_map


@pytest.fixture
def cluster_config_map():
    """ConfigMap of the reference cluster."""
    return create_config_map()


@pytest.fixture
def kafka_cluster(cluster_config_map):
    """The reference cluster parsed from its ConfigMap."""
    return KafkaCluster.from_config_map(cluster_config_map)


@pytest.fixture
def cluster_manifest():
    """Reference cluster ConfigMap in manifest (YAML) form."""
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": CLUSTER, "namespace": NAMESPACE},
        "data": {
            "kafka-nodes": str(REPLICAS),
            "kafka-image": IMAGE,
            "kafka-healthcheck-delay": str(HEALTH_DELAY),
            "kafka-healthcheck-timeout": str(HEALTH_TIMEOUT),
            "kafka-metrics-config": METRICS_CONFIG,
        },
    }

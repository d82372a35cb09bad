"""Property-based tests for naming, labels and resource generation.

Feature: kafka-cluster-controller
"""

from hypothesis import given
from hypothesis import strategies as st

from cluster_controller.build_integration import BuildIntegrationConfig
from cluster_controller.models.identity import (
    ClusterIdentity,
    cluster_labels,
    headless_name,
    primary_name,
)
from cluster_controller.models.kafka import UNKNOWN, KafkaCluster
from cluster_controller.models.storage import Storage
from cluster_controller.resources.generators import (
    generate_headless_service,
    generate_metrics_config_map,
    generate_service,
    generate_stateful_set,
)

NAME_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789-"
PLAIN_TEXT = st.text(
    alphabet=st.characters(whitelist_categories=("Ll", "Lu", "Nd", "Pd", "Po")),
    min_size=1,
    max_size=30,
)


@st.composite
def cluster_name(draw):
    """Generate valid DNS-label cluster names."""
    start = draw(st.sampled_from("abcdefghijklmnopqrstuvwxyz"))
    rest = draw(st.text(alphabet=NAME_ALPHABET, max_size=20))
    return (start + rest).rstrip("-") or start


@st.composite
def storage(draw):
    """Generate ephemeral or persistent-claim storage."""
    if draw(st.booleans()):
        return Storage()
    return Storage(
        type="persistent-claim",
        size=draw(st.sampled_from(["1Gi", "10Gi", "100Gi", "1Ti"])),
        storage_class=draw(st.one_of(st.none(), st.sampled_from(["fast", "standard"]))),
        delete_claim=draw(st.booleans()),
    )


@st.composite
def build_integration(draw):
    """Generate optional build integration settings."""
    if draw(st.booleans()):
        return None
    return BuildIntegrationConfig(
        source_image=draw(PLAIN_TEXT),
        source_tag=draw(PLAIN_TEXT),
        tag=draw(PLAIN_TEXT),
    )


@st.composite
def kafka_cluster(draw):
    """Generate a valid Kafka cluster model."""
    name = draw(cluster_name())
    return KafkaCluster(
        identity=ClusterIdentity(namespace=draw(cluster_name()), cluster_name=name),
        replicas=draw(st.integers(min_value=1, max_value=50)),
        image=draw(PLAIN_TEXT),
        healthcheck_initial_delay=draw(st.integers(min_value=0, max_value=600)),
        healthcheck_timeout=draw(st.integers(min_value=0, max_value=120)),
        metrics_config=draw(st.one_of(st.none(), st.text(max_size=50))),
        build_integration=draw(build_integration()),
        storage=draw(storage()),
        zookeeper_connect=draw(st.sampled_from([f"{name}-zookeeper:2181", "zk:2181"])),
        default_replication_factor=draw(st.integers(min_value=1, max_value=5)),
        offsets_topic_replication_factor=draw(st.integers(min_value=1, max_value=5)),
        transaction_state_log_replication_factor=draw(st.integers(min_value=1, max_value=5)),
    )


@given(name=cluster_name())
def test_naming_is_deterministic_and_distinct(name):
    """
    Derived names depend only on the cluster name, and the headless Service
    never shares the StatefulSet name.
    """
    assert primary_name(name) == primary_name(name)
    assert headless_name(name) == headless_name(name)
    assert primary_name(name) != headless_name(name)


@given(first=cluster_name(), second=cluster_name())
def test_naming_is_collision_free(first, second):
    if first != second:
        assert primary_name(first) != primary_name(second)
        assert headless_name(first) != headless_name(second)


@given(name=cluster_name(), resource=cluster_name())
def test_labels_are_sorted(name, resource):
    labels = cluster_labels(name, resource)

    assert list(labels) == sorted(labels)
    assert labels["strimzi.io/cluster"] == name
    assert labels["strimzi.io/kind"] == "kafka-cluster"
    assert labels["strimzi.io/name"] == resource


@given(cluster=kafka_cluster(), is_openshift=st.booleans())
def test_generators_are_idempotent(cluster, is_openshift):
    """Generating twice from the same model gives equal resources."""
    assert generate_service(cluster) == generate_service(cluster)
    assert generate_headless_service(cluster) == generate_headless_service(cluster)
    assert generate_stateful_set(cluster, is_openshift) == generate_stateful_set(
        cluster, is_openshift
    )
    assert generate_metrics_config_map(cluster) == generate_metrics_config_map(cluster)


@given(cluster=kafka_cluster(), is_openshift=st.booleans())
def test_selectors_are_consistent(cluster, is_openshift):
    """Both Services select exactly the pods of the StatefulSet."""
    service = generate_service(cluster)
    headless = generate_headless_service(cluster)
    stateful_set = generate_stateful_set(cluster, is_openshift)

    assert service.spec.selector == headless.spec.selector
    assert service.spec.selector == stateful_set.metadata.labels
    assert service.spec.selector == stateful_set.spec.selector.match_labels
    assert service.spec.selector == stateful_set.spec.template.metadata.labels
    assert headless.metadata.name != stateful_set.metadata.name
    assert stateful_set.spec.service_name == headless.metadata.name


@given(cluster=kafka_cluster(), is_openshift=st.booleans())
def test_stateful_set_round_trip(cluster, is_openshift):
    """Everything but the metrics configuration survives a StatefulSet round trip."""
    reconstructed = KafkaCluster.from_stateful_set(
        generate_stateful_set(cluster, is_openshift), cluster.namespace, cluster.cluster_name
    )

    assert reconstructed.metrics_config is UNKNOWN
    assert reconstructed.with_metrics_config(cluster.metrics_config) == cluster


@given(cluster=kafka_cluster())
def test_metrics_config_map_presence(cluster):
    metrics = generate_metrics_config_map(cluster)

    if cluster.metrics_config is None:
        assert metrics is None
    else:
        assert metrics.data == {"metrics-config.json": cluster.metrics_config}

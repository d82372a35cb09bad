"""Kubernetes resources generated from a Kafka cluster model.

All functions are pure: the same model always produces equal objects, which
is what lets the reconciliation loop compare regenerated resources against
live ones.
"""

from kubernetes.client import (
    V1ConfigMap,
    V1ConfigMapVolumeSource,
    V1Container,
    V1ContainerPort,
    V1EmptyDirVolumeSource,
    V1EnvVar,
    V1ExecAction,
    V1LabelSelector,
    V1ObjectMeta,
    V1PersistentVolumeClaim,
    V1PersistentVolumeClaimSpec,
    V1PodSecurityContext,
    V1PodSpec,
    V1PodTemplateSpec,
    V1Probe,
    V1Service,
    V1ServicePort,
    V1ServiceSpec,
    V1StatefulSet,
    V1StatefulSetSpec,
    V1Volume,
    V1VolumeMount,
    V1VolumeResourceRequirements,
)

from cluster_controller.logging_config import get_logger
from cluster_controller.models.kafka import (
    ANNOTATION_BUILD_SOURCE_IMAGE,
    ANNOTATION_BUILD_SOURCE_TAG,
    ANNOTATION_BUILD_TAG,
    ANNOTATION_DELETE_CLAIM,
    CLIENT_PORT,
    CLIENT_PORT_NAME,
    CONTAINER_NAME,
    DATA_VOLUME_MOUNT_PATH,
    DATA_VOLUME_NAME,
    ENV_DEFAULT_REPLICATION_FACTOR,
    ENV_OFFSETS_TOPIC_REPLICATION_FACTOR,
    ENV_TRANSACTION_STATE_LOG_REPLICATION_FACTOR,
    ENV_ZOOKEEPER_CONNECT,
    HEALTHCHECK_COMMAND,
    METRICS_CONFIG_FILE,
    METRICS_VOLUME_MOUNT_PATH,
    METRICS_VOLUME_NAME,
    KafkaCluster,
)

logger = get_logger(__name__)

SERVICE_TYPE = "ClusterIP"
HEADLESS_CLUSTER_IP = "None"
PROTOCOL_TCP = "TCP"

# Group of the broker user in the Kafka image
KAFKA_FS_GROUP = 1001


def _metadata(cluster: KafkaCluster, name: str, annotations: dict | None = None) -> V1ObjectMeta:
    return V1ObjectMeta(
        name=name,
        namespace=cluster.namespace,
        labels=cluster.labels(name),
        annotations=annotations or None,
    )


def _client_ports() -> list[V1ServicePort]:
    return [
        V1ServicePort(
            name=CLIENT_PORT_NAME,
            port=CLIENT_PORT,
            target_port=CLIENT_PORT,
            protocol=PROTOCOL_TCP,
        )
    ]


def generate_service(cluster: KafkaCluster) -> V1Service:
    """Generate the client-facing Service of the cluster.

    Args:
        cluster: The cluster model

    Returns:
        A ClusterIP Service selecting the broker pods
    """
    return V1Service(
        api_version="v1",
        kind="Service",
        metadata=_metadata(cluster, cluster.name),
        spec=V1ServiceSpec(
            type=SERVICE_TYPE,
            ports=_client_ports(),
            selector=cluster.labels(),
        ),
    )


def generate_headless_service(cluster: KafkaCluster) -> V1Service:
    """Generate the headless Service giving each broker pod its own DNS record.

    Args:
        cluster: The cluster model

    Returns:
        A Service with ``clusterIP: None`` selecting the broker pods
    """
    return V1Service(
        api_version="v1",
        kind="Service",
        metadata=_metadata(cluster, cluster.headless_name),
        spec=V1ServiceSpec(
            type=SERVICE_TYPE,
            cluster_ip=HEADLESS_CLUSTER_IP,
            ports=_client_ports(),
            selector=cluster.labels(),
        ),
    )


def _probe(cluster: KafkaCluster) -> V1Probe:
    return V1Probe(
        _exec=V1ExecAction(command=list(HEALTHCHECK_COMMAND)),
        initial_delay_seconds=cluster.healthcheck_initial_delay,
        timeout_seconds=cluster.healthcheck_timeout,
    )


def _env(cluster: KafkaCluster) -> list[V1EnvVar]:
    return [
        V1EnvVar(name=ENV_ZOOKEEPER_CONNECT, value=cluster.zookeeper_connect),
        V1EnvVar(
            name=ENV_DEFAULT_REPLICATION_FACTOR,
            value=str(cluster.default_replication_factor),
        ),
        V1EnvVar(
            name=ENV_OFFSETS_TOPIC_REPLICATION_FACTOR,
            value=str(cluster.offsets_topic_replication_factor),
        ),
        V1EnvVar(
            name=ENV_TRANSACTION_STATE_LOG_REPLICATION_FACTOR,
            value=str(cluster.transaction_state_log_replication_factor),
        ),
    ]


def _annotations(cluster: KafkaCluster) -> dict[str, str]:
    annotations = {}
    if cluster.storage.is_persistent:
        annotations[ANNOTATION_DELETE_CLAIM] = str(cluster.storage.delete_claim).lower()
    if cluster.build_integration is not None:
        annotations[ANNOTATION_BUILD_SOURCE_IMAGE] = cluster.build_integration.source_image
        annotations[ANNOTATION_BUILD_SOURCE_TAG] = cluster.build_integration.source_tag
        annotations[ANNOTATION_BUILD_TAG] = cluster.build_integration.tag
    return annotations


def _volumes(cluster: KafkaCluster) -> list[V1Volume]:
    # The metrics ConfigMap is optional so enabling or disabling metrics never
    # changes the pod template
    volumes = [
        V1Volume(
            name=METRICS_VOLUME_NAME,
            config_map=V1ConfigMapVolumeSource(name=cluster.metrics_config_name, optional=True),
        )
    ]
    if not cluster.storage.is_persistent:
        volumes.insert(0, V1Volume(name=DATA_VOLUME_NAME, empty_dir=V1EmptyDirVolumeSource()))
    return volumes


def _volume_claim_templates(cluster: KafkaCluster) -> list[V1PersistentVolumeClaim] | None:
    if not cluster.storage.is_persistent:
        return None

    return [
        V1PersistentVolumeClaim(
            metadata=V1ObjectMeta(name=DATA_VOLUME_NAME, labels=cluster.labels()),
            spec=V1PersistentVolumeClaimSpec(
                access_modes=["ReadWriteOnce"],
                resources=V1VolumeResourceRequirements(
                    requests={"storage": cluster.storage.size}
                ),
                storage_class_name=cluster.storage.storage_class,
            ),
        )
    ]


def generate_stateful_set(cluster: KafkaCluster, is_openshift: bool) -> V1StatefulSet:
    """Generate the StatefulSet running the Kafka brokers.

    Args:
        cluster: The cluster model
        is_openshift: Whether the target platform is OpenShift. On plain
            Kubernetes the pod gets an ``fsGroup`` so the broker can write to
            claimed volumes; OpenShift assigns one itself.

    Returns:
        The StatefulSet, with one broker pod per replica
    """
    container = V1Container(
        name=CONTAINER_NAME,
        image=cluster.image,
        ports=[
            V1ContainerPort(
                name=CLIENT_PORT_NAME, container_port=CLIENT_PORT, protocol=PROTOCOL_TCP
            )
        ],
        env=_env(cluster),
        volume_mounts=[
            V1VolumeMount(name=DATA_VOLUME_NAME, mount_path=DATA_VOLUME_MOUNT_PATH),
            V1VolumeMount(name=METRICS_VOLUME_NAME, mount_path=METRICS_VOLUME_MOUNT_PATH),
        ],
        liveness_probe=_probe(cluster),
        readiness_probe=_probe(cluster),
    )

    security_context = None
    if not is_openshift and cluster.storage.is_persistent:
        security_context = V1PodSecurityContext(fs_group=KAFKA_FS_GROUP)

    return V1StatefulSet(
        api_version="apps/v1",
        kind="StatefulSet",
        metadata=_metadata(cluster, cluster.name, _annotations(cluster)),
        spec=V1StatefulSetSpec(
            replicas=cluster.replicas,
            service_name=cluster.headless_name,
            selector=V1LabelSelector(match_labels=cluster.labels()),
            template=V1PodTemplateSpec(
                metadata=V1ObjectMeta(labels=cluster.labels()),
                spec=V1PodSpec(
                    containers=[container],
                    volumes=_volumes(cluster),
                    security_context=security_context,
                ),
            ),
            volume_claim_templates=_volume_claim_templates(cluster),
        ),
    )


def generate_metrics_config_map(cluster: KafkaCluster) -> V1ConfigMap | None:
    """Generate the ConfigMap carrying the metrics exporter configuration.

    Args:
        cluster: The cluster model

    Returns:
        The ConfigMap, or None when no metrics are configured or the
        configuration is unknown
    """
    if not cluster.metrics_enabled:
        if not cluster.metrics_known:
            logger.debug(f"Metrics configuration of {cluster.identity} is unknown, not generating")
        return None

    return V1ConfigMap(
        api_version="v1",
        kind="ConfigMap",
        metadata=_metadata(cluster, cluster.metrics_config_name),
        data={METRICS_CONFIG_FILE: cluster.metrics_config},
    )

"""Kafka cluster model.

A :class:`KafkaCluster` is built either from the cluster ConfigMap (the
desired state) or from the StatefulSet running on the platform (the live
state). Both constructors return the same immutable value; the StatefulSet
path cannot recover the metrics configuration, which is marked ``UNKNOWN``.
"""

import re
from collections.abc import Mapping
from enum import Enum
from typing import Any

from kubernetes.client import V1ConfigMap, V1Container, V1StatefulSet
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from cluster_controller.build_integration import BuildIntegrationConfig
from cluster_controller.exceptions import ConfigurationError, ReconstructionError
from cluster_controller.logging_config import get_logger
from cluster_controller.models.identity import ClusterIdentity
from cluster_controller.models.storage import Storage

logger = get_logger(__name__)

# ConfigMap keys
KEY_REPLICAS = "kafka-nodes"
KEY_IMAGE = "kafka-image"
KEY_HEALTHCHECK_DELAY = "kafka-healthcheck-delay"
KEY_HEALTHCHECK_TIMEOUT = "kafka-healthcheck-timeout"
KEY_METRICS_CONFIG = "kafka-metrics-config"
KEY_STORAGE = "kafka-storage"
KEY_BUILD_INTEGRATION = "kafka-build-integration"
KEY_ZOOKEEPER_CONNECT = "kafka-zookeeper-connect"
KEY_DEFAULT_REPLICATION_FACTOR = "kafka-default-replication-factor"
KEY_OFFSETS_TOPIC_REPLICATION_FACTOR = "kafka-offsets-topic-replication-factor"
KEY_TRANSACTION_STATE_LOG_REPLICATION_FACTOR = "kafka-transaction-state-log-replication-factor"

REQUIRED_KEYS = (KEY_REPLICAS, KEY_IMAGE)

# Model field -> ConfigMap key, for error reporting
FIELD_KEYS = {
    "replicas": KEY_REPLICAS,
    "image": KEY_IMAGE,
    "healthcheck_initial_delay": KEY_HEALTHCHECK_DELAY,
    "healthcheck_timeout": KEY_HEALTHCHECK_TIMEOUT,
    "metrics_config": KEY_METRICS_CONFIG,
    "storage": KEY_STORAGE,
    "build_integration": KEY_BUILD_INTEGRATION,
    "zookeeper_connect": KEY_ZOOKEEPER_CONNECT,
    "default_replication_factor": KEY_DEFAULT_REPLICATION_FACTOR,
    "offsets_topic_replication_factor": KEY_OFFSETS_TOPIC_REPLICATION_FACTOR,
    "transaction_state_log_replication_factor": KEY_TRANSACTION_STATE_LOG_REPLICATION_FACTOR,
}

# Defaults
DEFAULT_HEALTHCHECK_DELAY = 15
DEFAULT_HEALTHCHECK_TIMEOUT = 5
DEFAULT_REPLICATION_FACTOR = 3
DEFAULT_ZOOKEEPER_PORT = 2181

# Workload shape shared by the generator and the reconstructor
CONTAINER_NAME = "kafka"
CLIENT_PORT = 9092
CLIENT_PORT_NAME = "clients"
DATA_VOLUME_NAME = "kafka-storage"
DATA_VOLUME_MOUNT_PATH = "/var/lib/kafka"
METRICS_VOLUME_NAME = "kafka-metrics-config"
METRICS_VOLUME_MOUNT_PATH = "/opt/prometheus/config/"
METRICS_CONFIG_FILE = "metrics-config.json"
HEALTHCHECK_COMMAND = ["/opt/kafka/kafka_healthcheck.sh"]

ENV_ZOOKEEPER_CONNECT = "KAFKA_ZOOKEEPER_CONNECT"
ENV_DEFAULT_REPLICATION_FACTOR = "KAFKA_DEFAULT_REPLICATION_FACTOR"
ENV_OFFSETS_TOPIC_REPLICATION_FACTOR = "KAFKA_OFFSETS_TOPIC_REPLICATION_FACTOR"
ENV_TRANSACTION_STATE_LOG_REPLICATION_FACTOR = "KAFKA_TRANSACTION_STATE_LOG_REPLICATION_FACTOR"

ANNOTATION_DELETE_CLAIM = "strimzi.io/delete-claim"
ANNOTATION_BUILD_SOURCE_IMAGE = "strimzi.io/build-source-image"
ANNOTATION_BUILD_SOURCE_TAG = "strimzi.io/build-source-tag"
ANNOTATION_BUILD_TAG = "strimzi.io/build-tag"

# Kubernetes default for an unset probe timeout
PROBE_DEFAULT_TIMEOUT = 1

WHOLE_NUMBER = re.compile(r"[+-]?\d+")


class Unknown(Enum):
    """Marker for values that cannot be recovered from live resources."""

    UNKNOWN = "unknown"

    def __repr__(self) -> str:
        return "UNKNOWN"


UNKNOWN = Unknown.UNKNOWN


def default_zookeeper_connect(cluster_name: str) -> str:
    """ZooKeeper connection string used when the ConfigMap does not set one."""
    return f"{cluster_name}-zookeeper:{DEFAULT_ZOOKEEPER_PORT}"


class KafkaCluster(BaseModel):
    """Immutable configuration of a Kafka cluster."""

    model_config = ConfigDict(frozen=True)

    identity: ClusterIdentity
    replicas: int
    image: str
    healthcheck_initial_delay: int = DEFAULT_HEALTHCHECK_DELAY
    healthcheck_timeout: int = DEFAULT_HEALTHCHECK_TIMEOUT
    metrics_config: str | None | Unknown = None
    build_integration: BuildIntegrationConfig | None = None
    storage: Storage = Storage()
    zookeeper_connect: str
    default_replication_factor: int = DEFAULT_REPLICATION_FACTOR
    offsets_topic_replication_factor: int = DEFAULT_REPLICATION_FACTOR
    transaction_state_log_replication_factor: int = DEFAULT_REPLICATION_FACTOR

    @field_validator(
        "replicas",
        "healthcheck_initial_delay",
        "healthcheck_timeout",
        "default_replication_factor",
        "offsets_topic_replication_factor",
        "transaction_state_log_replication_factor",
        mode="before",
    )
    @classmethod
    def parse_whole_number(cls, v: Any) -> int:
        """Accept ints and decimal digit strings only; ``True`` or ``"12.0"`` are rejected."""
        if isinstance(v, bool):
            raise ValueError(f"must be a whole number, got {v!r}")
        if isinstance(v, int):
            return v
        if isinstance(v, str) and WHOLE_NUMBER.fullmatch(v.strip()):
            return int(v)
        raise ValueError(f"must be a whole number, got {v!r}")

    @field_validator(
        "replicas",
        "default_replication_factor",
        "offsets_topic_replication_factor",
        "transaction_state_log_replication_factor",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate counts are positive."""
        if v <= 0:
            raise ValueError(f"must be a positive integer, got {v}")
        return v

    @field_validator("healthcheck_initial_delay", "healthcheck_timeout")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Validate health check timings are not negative."""
        if v < 0:
            raise ValueError(f"must be a non-negative number of seconds, got {v}")
        return v

    @field_validator("image", "zookeeper_connect")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Validate string settings are not empty."""
        if not v:
            raise ValueError("cannot be empty")
        return v

    @property
    def namespace(self) -> str:
        return self.identity.namespace

    @property
    def cluster_name(self) -> str:
        return self.identity.cluster_name

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def headless_name(self) -> str:
        return self.identity.headless_name

    @property
    def metrics_config_name(self) -> str:
        return self.identity.metrics_config_name

    @property
    def metrics_known(self) -> bool:
        """False when the metrics configuration could not be recovered."""
        return self.metrics_config is not UNKNOWN

    @property
    def metrics_enabled(self) -> bool:
        return isinstance(self.metrics_config, str)

    def labels(self, name: str | None = None) -> dict[str, str]:
        return self.identity.labels(name)

    def with_metrics_config(self, metrics_config: str | None) -> "KafkaCluster":
        """Return a copy carrying the given metrics configuration.

        Args:
            metrics_config: Metrics content, or None when no metrics are configured

        Returns:
            A new KafkaCluster; this one is left untouched
        """
        return self.model_copy(update={"metrics_config": metrics_config})

    def with_metrics_config_map(self, config_map: V1ConfigMap | None) -> "KafkaCluster":
        """Return a copy carrying the content of a live metrics ConfigMap.

        A missing ConfigMap means no metrics are configured.
        """
        content = None
        if config_map is not None:
            content = (config_map.data or {}).get(METRICS_CONFIG_FILE)
        return self.with_metrics_config(content)

    @classmethod
    def from_config_map(
        cls, config_map: V1ConfigMap, namespace: str | None = None
    ) -> "KafkaCluster":
        """Build the desired cluster from its ConfigMap.

        Args:
            config_map: Cluster ConfigMap; its name is the cluster name
            namespace: Namespace to use when the ConfigMap metadata has none

        Returns:
            The parsed KafkaCluster

        Raises:
            ConfigurationError: If the ConfigMap is unnamed or has invalid data
        """
        metadata = config_map.metadata
        if metadata is None or not metadata.name:
            raise ConfigurationError(
                "Cluster ConfigMap has no name",
                "The ConfigMap name is used as the cluster name",
                field="metadata.name",
            )

        resolved_namespace = metadata.namespace or namespace
        if not resolved_namespace:
            raise ConfigurationError(
                f"Cluster ConfigMap '{metadata.name}' has no namespace",
                "Set metadata.namespace or pass a namespace explicitly",
                field="metadata.namespace",
            )

        return cls.from_config_map_data(resolved_namespace, metadata.name, config_map.data or {})

    @classmethod
    def from_config_map_data(
        cls, namespace: str, cluster_name: str, data: Mapping[str, Any]
    ) -> "KafkaCluster":
        """Build the desired cluster from ConfigMap data.

        Args:
            namespace: Namespace of the cluster
            cluster_name: Name of the cluster
            data: ConfigMap data keyed by the ``kafka-*`` keys

        Returns:
            The parsed KafkaCluster

        Raises:
            ConfigurationError: If a required key is missing or a value is invalid
        """
        try:
            identity = ClusterIdentity(namespace=namespace, cluster_name=cluster_name)
        except ValidationError as e:
            raise ConfigurationError(
                "Invalid cluster identity",
                f"namespace={namespace!r}, cluster_name={cluster_name!r}",
                field="metadata",
            ) from e

        logger.debug(f"Parsing cluster ConfigMap {identity}")

        for key in REQUIRED_KEYS:
            if key not in data:
                logger.error(f"Cluster ConfigMap {identity} is missing required key '{key}'")
                raise ConfigurationError(
                    f"Cluster ConfigMap {identity} is missing required key '{key}'",
                    f"Required keys: {', '.join(REQUIRED_KEYS)}",
                    field=key,
                )

        storage = _parse_json_block(identity, data, KEY_STORAGE, Storage)
        build_integration = _parse_json_block(
            identity, data, KEY_BUILD_INTEGRATION, BuildIntegrationConfig
        )

        settings = {
            "identity": identity,
            "replicas": data[KEY_REPLICAS],
            "image": data[KEY_IMAGE],
            "healthcheck_initial_delay": data.get(KEY_HEALTHCHECK_DELAY, DEFAULT_HEALTHCHECK_DELAY),
            "healthcheck_timeout": data.get(KEY_HEALTHCHECK_TIMEOUT, DEFAULT_HEALTHCHECK_TIMEOUT),
            "metrics_config": data.get(KEY_METRICS_CONFIG),
            "build_integration": build_integration,
            "zookeeper_connect": data.get(
                KEY_ZOOKEEPER_CONNECT, default_zookeeper_connect(cluster_name)
            ),
            "default_replication_factor": data.get(
                KEY_DEFAULT_REPLICATION_FACTOR, DEFAULT_REPLICATION_FACTOR
            ),
            "offsets_topic_replication_factor": data.get(
                KEY_OFFSETS_TOPIC_REPLICATION_FACTOR, DEFAULT_REPLICATION_FACTOR
            ),
            "transaction_state_log_replication_factor": data.get(
                KEY_TRANSACTION_STATE_LOG_REPLICATION_FACTOR, DEFAULT_REPLICATION_FACTOR
            ),
        }
        if storage is not None:
            settings["storage"] = storage

        try:
            cluster = cls(**settings)
        except ValidationError as e:
            error = e.errors()[0]
            key = FIELD_KEYS.get(error["loc"][0], str(error["loc"][0])) if error["loc"] else None
            logger.error(f"Invalid value for '{key}' in ConfigMap {identity}: {error['msg']}")
            raise ConfigurationError(
                f"Invalid value for '{key}' in cluster ConfigMap {identity}",
                error["msg"],
                field=key,
            ) from e

        logger.debug(f"Parsed cluster {identity} with {cluster.replicas} replicas")
        return cluster

    @classmethod
    def from_stateful_set(
        cls, stateful_set: V1StatefulSet, namespace: str, cluster_name: str
    ) -> "KafkaCluster":
        """Reconstruct a cluster from the StatefulSet running it.

        The metrics configuration lives in its own ConfigMap and is returned
        as ``UNKNOWN``; attach it with :meth:`with_metrics_config_map`.

        Args:
            stateful_set: The live StatefulSet
            namespace: Namespace of the cluster
            cluster_name: Name of the cluster

        Returns:
            The reconstructed KafkaCluster

        Raises:
            ReconstructionError: If the StatefulSet does not have the expected shape
        """
        try:
            identity = ClusterIdentity(namespace=namespace, cluster_name=cluster_name)
        except ValidationError as e:
            raise ReconstructionError(
                "Invalid cluster identity",
                f"namespace={namespace!r}, cluster_name={cluster_name!r}",
            ) from e

        metadata = stateful_set.metadata
        resource = metadata.name if metadata is not None and metadata.name else identity.name

        logger.debug(f"Reconstructing cluster {identity} from StatefulSet {resource}")

        if resource != identity.name:
            raise ReconstructionError(
                f"StatefulSet '{resource}' does not belong to cluster {identity}",
                f"Expected a StatefulSet named '{identity.name}'",
                resource=resource,
            )

        spec = stateful_set.spec
        if spec is None or spec.template is None or spec.template.spec is None:
            raise ReconstructionError(
                f"StatefulSet '{resource}' has no pod template", resource=resource
            )

        container = _find_container(spec.template.spec.containers or [])
        if container is None:
            raise ReconstructionError(
                f"StatefulSet '{resource}' has no containers", resource=resource
            )

        liveness = container.liveness_probe
        readiness = container.readiness_probe
        if liveness is None or readiness is None:
            raise ReconstructionError(
                f"StatefulSet '{resource}' container '{container.name}' is missing health probes",
                "Both liveness and readiness probes are expected",
                resource=resource,
            )
        if (liveness.initial_delay_seconds, liveness.timeout_seconds) != (
            readiness.initial_delay_seconds,
            readiness.timeout_seconds,
        ):
            logger.warning(
                f"StatefulSet '{resource}' has differing liveness and readiness probe timings, "
                "using the liveness probe"
            )

        env = {var.name: var.value for var in container.env or []}
        annotations = (metadata.annotations if metadata is not None else None) or {}

        try:
            cluster = cls(
                identity=identity,
                replicas=spec.replicas if spec.replicas is not None else 1,
                image=container.image,
                healthcheck_initial_delay=liveness.initial_delay_seconds or 0,
                healthcheck_timeout=(
                    liveness.timeout_seconds
                    if liveness.timeout_seconds is not None
                    else PROBE_DEFAULT_TIMEOUT
                ),
                metrics_config=UNKNOWN,
                build_integration=_build_integration_from_annotations(annotations),
                storage=_storage_from_stateful_set(stateful_set, annotations),
                zookeeper_connect=env.get(
                    ENV_ZOOKEEPER_CONNECT, default_zookeeper_connect(cluster_name)
                ),
                default_replication_factor=env.get(
                    ENV_DEFAULT_REPLICATION_FACTOR, DEFAULT_REPLICATION_FACTOR
                ),
                offsets_topic_replication_factor=env.get(
                    ENV_OFFSETS_TOPIC_REPLICATION_FACTOR, DEFAULT_REPLICATION_FACTOR
                ),
                transaction_state_log_replication_factor=env.get(
                    ENV_TRANSACTION_STATE_LOG_REPLICATION_FACTOR, DEFAULT_REPLICATION_FACTOR
                ),
            )
        except ValidationError as e:
            logger.error(f"StatefulSet '{resource}' could not be read back: {e}")
            raise ReconstructionError(
                f"StatefulSet '{resource}' has values this controller cannot read",
                str(e),
                resource=resource,
            ) from e

        logger.debug(f"Reconstructed cluster {identity} with {cluster.replicas} replicas")
        return cluster


def _parse_json_block(
    identity: ClusterIdentity, data: Mapping[str, Any], key: str, model: type[BaseModel]
) -> BaseModel | None:
    """Parse an optional JSON-valued ConfigMap key into a model."""
    raw = data.get(key)
    if raw is None:
        return None

    try:
        if isinstance(raw, str):
            return model.model_validate_json(raw)
        return model.model_validate(raw)
    except ValidationError as e:
        logger.error(f"Invalid '{key}' block in cluster ConfigMap {identity}: {e}")
        raise ConfigurationError(
            f"Invalid value for '{key}' in cluster ConfigMap {identity}",
            str(e),
            field=key,
        ) from e


def _find_container(containers: list[V1Container]) -> V1Container | None:
    for container in containers:
        if container.name == CONTAINER_NAME:
            return container
    return containers[0] if containers else None


def _storage_from_stateful_set(stateful_set: V1StatefulSet, annotations: dict[str, str]) -> Storage:
    for claim in stateful_set.spec.volume_claim_templates or []:
        if claim.metadata is None or claim.metadata.name != DATA_VOLUME_NAME:
            continue

        claim_spec = claim.spec
        requests = {}
        if claim_spec is not None and claim_spec.resources is not None:
            requests = claim_spec.resources.requests or {}

        return Storage(
            type="persistent-claim",
            size=requests.get("storage"),
            storage_class=claim_spec.storage_class_name if claim_spec is not None else None,
            delete_claim=annotations.get(ANNOTATION_DELETE_CLAIM, "false").lower() == "true",
        )

    return Storage()


def _build_integration_from_annotations(
    annotations: dict[str, str],
) -> BuildIntegrationConfig | None:
    source_image = annotations.get(ANNOTATION_BUILD_SOURCE_IMAGE)
    if source_image is None:
        return None

    return BuildIntegrationConfig(
        source_image=source_image,
        source_tag=annotations.get(ANNOTATION_BUILD_SOURCE_TAG, "latest"),
        tag=annotations.get(ANNOTATION_BUILD_TAG, "latest"),
    )

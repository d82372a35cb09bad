"""Conversion between Kubernetes model objects and YAML manifests."""

from pathlib import Path
from typing import Any

import yaml
from kubernetes.client import ApiClient, V1ConfigMap, V1ObjectMeta

from cluster_controller.exceptions import ConfigurationError
from cluster_controller.logging_config import get_logger
from cluster_controller.models.kafka import KafkaCluster
from cluster_controller.resources.generators import (
    generate_headless_service,
    generate_metrics_config_map,
    generate_service,
    generate_stateful_set,
)

logger = get_logger(__name__)


def to_manifest(resource: Any) -> dict:
    """Serialize a Kubernetes model object into its camelCase manifest form."""
    with ApiClient() as api_client:
        return api_client.sanitize_for_serialization(resource)


def render_manifests(cluster: KafkaCluster, is_openshift: bool = False) -> list[dict]:
    """Generate every resource of a cluster as manifests.

    Args:
        cluster: The cluster model
        is_openshift: Whether the target platform is OpenShift

    Returns:
        Manifests in apply order; the metrics ConfigMap is left out when
        metrics are not configured
    """
    resources = [
        generate_metrics_config_map(cluster),
        generate_service(cluster),
        generate_headless_service(cluster),
        generate_stateful_set(cluster, is_openshift),
    ]
    return [to_manifest(r) for r in resources if r is not None]


def dump_manifests(manifests: list[dict]) -> str:
    """Dump manifests as a multi-document YAML stream."""
    return yaml.safe_dump_all(manifests, default_flow_style=False, sort_keys=False)


def load_manifest(path: str | Path) -> dict:
    """Load a single YAML manifest from a file.

    Args:
        path: Path to the manifest

    Returns:
        The parsed manifest

    Raises:
        ConfigurationError: If the file is missing or is not a YAML mapping
    """
    path = Path(path)
    logger.debug(f"Reading manifest: {path}")

    if not path.exists():
        raise ConfigurationError(
            f"Manifest not found: {path}",
            f"Expected location: {path.absolute()}",
        )

    try:
        with open(path) as f:
            manifest = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse manifest {path}: {e}")
        raise ConfigurationError(
            f"Failed to parse manifest: {path}",
            f"The file has invalid YAML syntax: {e}",
        ) from e

    if not isinstance(manifest, dict):
        raise ConfigurationError(
            f"Manifest {path} is not a YAML mapping",
            "Expected a single Kubernetes resource",
        )
    return manifest


def _data_value(key: str, value: Any) -> str:
    """Convert a ConfigMap data value from YAML into the string the platform stores."""
    if isinstance(value, str):
        return value
    # bool first, it is a subclass of int
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(
            f"Invalid value for '{key}' in ConfigMap manifest: {value!r}",
            "ConfigMap data values are strings; quote the value or use a number",
            field=key,
        )
    return str(value)


def config_map_from_manifest(manifest: dict) -> V1ConfigMap:
    """Build a ConfigMap object from its manifest form.

    Unquoted YAML numbers in ``data`` are converted to strings, as
    ``kubectl`` would require them to be.

    Args:
        manifest: A ``kind: ConfigMap`` manifest

    Returns:
        The ConfigMap object

    Raises:
        ConfigurationError: If the manifest is not a ConfigMap or a data value
            is not a string or number
    """
    kind = manifest.get("kind", "ConfigMap")
    if kind != "ConfigMap":
        raise ConfigurationError(
            f"Expected a ConfigMap manifest, got kind '{kind}'",
            "Cluster configuration is read from a ConfigMap",
            field="kind",
        )

    metadata = manifest.get("metadata") or {}
    data = manifest.get("data") or {}
    if not isinstance(metadata, dict) or not isinstance(data, dict):
        raise ConfigurationError(
            "ConfigMap metadata and data must be mappings",
            field="data" if isinstance(metadata, dict) else "metadata",
        )

    data = {str(key): _data_value(str(key), value) for key, value in data.items()}

    try:
        return V1ConfigMap(
            api_version=manifest.get("apiVersion", "v1"),
            kind="ConfigMap",
            metadata=V1ObjectMeta(
                name=metadata.get("name"),
                namespace=metadata.get("namespace"),
                labels=metadata.get("labels"),
            ),
            data=data,
        )
    except (TypeError, ValueError) as e:
        logger.error(f"Invalid ConfigMap manifest: {e}")
        raise ConfigurationError("Invalid ConfigMap manifest", str(e), field="metadata") from e

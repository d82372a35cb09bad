"""Kubernetes resources derived from a Kafka cluster model."""

from cluster_controller.resources.generators import (
    generate_headless_service,
    generate_metrics_config_map,
    generate_service,
    generate_stateful_set,
)

__all__ = [
    "generate_headless_service",
    "generate_metrics_config_map",
    "generate_service",
    "generate_stateful_set",
]

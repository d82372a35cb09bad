"""Reconciliation core for Kafka clusters running on Kubernetes."""

__version__ = "0.1.0"

"""Unit tests for the render and diff commands."""

from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from cluster_controller.cli import app
from cluster_controller.resources.generators import (
    generate_metrics_config_map,
    generate_stateful_set,
)

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path, cluster_manifest):
    path = tmp_path / "foo.yaml"
    path.write_text(yaml.safe_dump(cluster_manifest))
    return path


@pytest.fixture
def write_config(tmp_path, cluster_manifest):
    def write(name, **data):
        manifest = {**cluster_manifest, "data": {**cluster_manifest["data"], **data}}
        path = tmp_path / name
        path.write_text(yaml.safe_dump(manifest))
        return path

    return write


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "0.1.0" in result.stdout


def test_render_help():
    result = runner.invoke(app, ["render", "--help"])

    assert result.exit_code == 0
    assert "--openshift" in result.stdout
    assert "--output" in result.stdout


def test_render_to_stdout(config_file):
    result = runner.invoke(app, ["render", str(config_file)])

    assert result.exit_code == 0
    documents = list(yaml.safe_load_all(result.stdout))
    assert [d["kind"] for d in documents] == ["ConfigMap", "Service", "Service", "StatefulSet"]


def test_render_to_file(config_file, tmp_path):
    output = tmp_path / "out.yaml"

    result = runner.invoke(app, ["render", str(config_file), "--output", str(output)])

    assert result.exit_code == 0
    assert len(list(yaml.safe_load_all(output.read_text()))) == 4


def test_render_missing_config(tmp_path):
    result = runner.invoke(app, ["render", str(tmp_path / "nonexistent.yaml")])

    assert result.exit_code == 1
    assert "Manifest not found" in result.stdout


def test_render_invalid_config(write_config):
    path = write_config("bad.yaml", **{"kafka-nodes": "0"})

    result = runner.invoke(app, ["render", str(path)])

    assert result.exit_code == 1
    assert "kafka-nodes" in result.stdout


def test_diff_against_identical_config(config_file, write_config):
    other = write_config("same.yaml")

    result = runner.invoke(app, ["diff", str(config_file), "--against", str(other)])

    assert result.exit_code == 0
    assert "up to date" in result.stdout


def test_diff_against_changed_image(config_file, write_config):
    old = write_config("old.yaml", **{"kafka-image": "oldimage"})

    result = runner.invoke(app, ["diff", str(config_file), "--against", str(old)])

    assert result.exit_code == 0
    assert "rolling-update" in result.stdout


def test_diff_live_cluster_up_to_date(config_file, kafka_cluster):
    live = (
        generate_stateful_set(kafka_cluster, False),
        generate_metrics_config_map(kafka_cluster),
    )

    with patch("cluster_controller.cli.fetch_live_state", return_value=live) as fetch:
        result = runner.invoke(app, ["diff", str(config_file)])

    fetch.assert_called_once_with("test", "foo")
    assert result.exit_code == 0
    assert "up to date" in result.stdout


def test_diff_live_cluster_scaled(config_file, kafka_cluster):
    smaller = kafka_cluster.model_copy(update={"replicas": 1})
    live = (generate_stateful_set(smaller, False), generate_metrics_config_map(smaller))

    with patch("cluster_controller.cli.fetch_live_state", return_value=live):
        result = runner.invoke(app, ["diff", str(config_file)])

    assert result.exit_code == 0
    assert "scale-up" in result.stdout
    assert "rolling-update" not in result.stdout


def test_diff_live_cluster_missing(config_file):
    with patch("cluster_controller.cli.fetch_live_state", return_value=(None, None)):
        result = runner.invoke(app, ["diff", str(config_file)])

    assert result.exit_code == 0
    assert "scale-up" in result.stdout


def test_diff_no_kubeconfig(config_file):
    from kubernetes.config import ConfigException

    with patch(
        "kubernetes.config.load_kube_config",
        side_effect=ConfigException("Invalid kube-config file. No configuration found."),
    ):
        result = runner.invoke(app, ["diff", str(config_file)])

    assert result.exit_code == 1
    assert "Failed to load kubeconfig" in result.stdout


def test_render_unquoted_integer(write_config):
    path = write_config("int.yaml", **{"kafka-nodes": 5})

    result = runner.invoke(app, ["render", str(path)])

    assert result.exit_code == 0
    stateful_set = list(yaml.safe_load_all(result.stdout))[-1]
    assert stateful_set["spec"]["replicas"] == 5


def test_render_boolean_value(write_config):
    path = write_config("bool.yaml", **{"kafka-nodes": True})

    result = runner.invoke(app, ["render", str(path)])

    assert result.exit_code == 1
    assert "Error:" in result.stdout
    assert "kafka-nodes" in result.stdout


def test_render_unwritable_output(config_file, tmp_path):
    result = runner.invoke(app, ["render", str(config_file), "--output", str(tmp_path)])

    assert result.exit_code == 1
    assert "Unexpected error" in result.stdout


def test_invalid_log_level(config_file):
    result = runner.invoke(app, ["--log-level", "LOUD", "render", str(config_file)])

    assert result.exit_code == 2

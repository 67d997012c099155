from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from kwok_e2e.config import WorkableConfig, load_config, read_config_file, resolve_config
from kwok_e2e.constants import DEFAULT_PROMETHEUS_TARGETS_URL


def test_defaults():
    cfg = WorkableConfig()
    assert cfg.cluster_name == "kwok"
    assert cfg.kwokctl_path == "kwokctl"
    assert cfg.retry.max_attempts == 120
    assert cfg.retry.delay == 1.0
    assert cfg.thin_runtimes == ["kind", "kind-podman"]
    assert cfg.min_healthy_targets == 6
    assert cfg.endpoints.prometheus_targets == DEFAULT_PROMETHEUS_TARGETS_URL
    assert cfg.kubeconfig_path == Path("kwok.kubeconfig")


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("KWOK_E2E_CLUSTER_NAME", "e2e")
    monkeypatch.setenv("KWOK_E2E_RETRY__DELAY", "0.25")
    monkeypatch.setenv("KWOK_E2E_ENDPOINTS__KWOK_CONTROLLER_HEALTHZ", "http://10.0.0.1:10247/healthz")
    cfg = WorkableConfig()
    assert cfg.cluster_name == "e2e"
    assert cfg.retry.delay == 0.25
    assert cfg.retry.max_attempts == 120
    assert cfg.endpoints.kwok_controller_healthz == "http://10.0.0.1:10247/healthz"
    assert cfg.kubeconfig_path == Path("e2e.kubeconfig")


def test_file_then_cli_priority(tmp_path, monkeypatch):
    monkeypatch.setenv("KWOK_E2E_RUNTIME", "binary")
    path = tmp_path / "kwok-e2e.yaml"
    path.write_text(yaml.safe_dump({
        "cluster_name": "from-file",
        "runtime": "kind",
        "retry": {"max_attempts": 10, "delay": 2},
    }))
    cfg = resolve_config(path, cluster_name="from-cli", attempts=3)
    assert cfg.cluster_name == "from-cli"
    assert cfg.runtime == "kind"
    assert cfg.retry.max_attempts == 3
    assert cfg.retry.delay == 2


def test_env_fills_gaps_left_by_file(tmp_path, monkeypatch):
    monkeypatch.setenv("KWOK_E2E_KWOKCTL_PATH", "/usr/local/bin/kwokctl")
    path = tmp_path / "kwok-e2e.yaml"
    path.write_text("cluster_name: from-file\n")
    cfg = load_config(path)
    assert cfg.cluster_name == "from-file"
    assert cfg.kwokctl_path == "/usr/local/bin/kwokctl"


def test_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert read_config_file(path) == {}


def test_non_mapping_file(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError, match="mapping"):
        read_config_file(path)


def test_optional_steps_override():
    cfg = resolve_config(optional_steps=["jaeger-services"])
    assert cfg.optional_steps == ["jaeger-services"]


@pytest.mark.parametrize("overrides", [
    {"retry": {"max_attempts": 0}},
    {"retry": {"delay": -1}},
    {"replicas": -1},
    {"http_timeout": 0},
])
def test_invalid_values(overrides):
    with pytest.raises(ValidationError):
        load_config(None, overrides)

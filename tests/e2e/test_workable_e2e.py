"""Workable check against a live kwokctl cluster.

Create a cluster first (``kwokctl create cluster --name <name> --runtime <runtime>``
with Prometheus and Jaeger enabled), then run:

    KWOK_E2E_LIVE=1 KWOK_E2E_CLUSTER_NAME=<name> KWOK_E2E_RUNTIME=<runtime> pytest tests/e2e
"""

from __future__ import annotations

import os

import pytest

from kwok_e2e.config import WorkableConfig
from kwok_e2e.constants import ENV_LIVE
from kwok_e2e.orchestrator import run_verification

pytestmark = [
    pytest.mark.e2e,
    pytest.mark.skipif(os.environ.get(ENV_LIVE) != "1", reason=f"set {ENV_LIVE}=1 to run against a live cluster"),
]


_exported = {k: v for k, v in os.environ.items() if k.startswith("KWOK_E2E_")}


@pytest.fixture
def live_config(tmp_path, monkeypatch):
    # conftest clears KWOK_E2E_* for unit tests; restore what the caller exported
    for key, value in _exported.items():
        monkeypatch.setenv(key, value)
    cfg = WorkableConfig()
    return cfg.model_copy(update={"kubeconfig_dir": tmp_path})


def test_cluster_is_workable(live_config):
    report = run_verification(live_config)
    report.raise_for_failure()


def test_second_run_is_idempotent(live_config):
    kubeconfig = live_config.kubeconfig_path
    assert run_verification(live_config).passed
    first = kubeconfig.read_bytes()
    assert run_verification(live_config).passed
    assert kubeconfig.read_bytes() == first

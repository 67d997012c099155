# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Configuration models, config file loading, and config display."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.panel import Panel

from kwok_e2e import console
from kwok_e2e.constants import (
    DEFAULT_CLUSTER_NAME,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_ETCD_EXPECTED,
    DEFAULT_ETCD_HEALTH_URL,
    DEFAULT_ETCD_KEY,
    DEFAULT_FAKE_NODE,
    DEFAULT_FAKE_POD,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_JAEGER_SERVICES_URL,
    DEFAULT_KUBE_CONTROLLER_MANAGER_HEALTHZ_URL,
    DEFAULT_KUBE_SCHEDULER_HEALTHZ_URL,
    DEFAULT_KUBECONFIG_GROUP,
    DEFAULT_KUBECONFIG_USER,
    DEFAULT_KWOK_CONTROLLER_HEALTHZ_URL,
    DEFAULT_KWOKCTL_PATH,
    DEFAULT_MIN_HEALTHY_TARGETS,
    DEFAULT_PROMETHEUS_TARGETS_URL,
    DEFAULT_REPLICAS,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY_SECONDS,
    DEFAULT_RUNTIME,
    ENV_PREFIX,
    KUBECONFIG_SUFFIX,
    THIN_RUNTIMES,
)


# ============================================================================
# Configuration classes
# ============================================================================

class RetryPolicy(BaseModel):
    """Attempt budget and fixed delay for polling a probe.

    Attributes:
        max_attempts: Total number of probe invocations allowed.
        delay: Seconds to sleep between two failed attempts.
    """

    max_attempts: int = Field(default=DEFAULT_RETRY_ATTEMPTS, ge=1)
    delay: float = Field(default=DEFAULT_RETRY_DELAY_SECONDS, ge=0)


class EndpointConfig(BaseModel):
    """Local health endpoints polled by the HTTP probes."""

    prometheus_targets: str = DEFAULT_PROMETHEUS_TARGETS_URL
    jaeger_services: str = DEFAULT_JAEGER_SERVICES_URL
    kwok_controller_healthz: str = DEFAULT_KWOK_CONTROLLER_HEALTHZ_URL
    etcd_health: str = DEFAULT_ETCD_HEALTH_URL
    kube_scheduler_healthz: str = DEFAULT_KUBE_SCHEDULER_HEALTHZ_URL
    kube_controller_manager_healthz: str = DEFAULT_KUBE_CONTROLLER_MANAGER_HEALTHZ_URL


class WorkableConfig(BaseSettings):
    """Workable verification settings, auto-loaded from KWOK_E2E_* env vars.

    Nested fields use ``__`` as delimiter, e.g. ``KWOK_E2E_RETRY__DELAY=0.5``.

    Attributes:
        cluster_name: Name of the kwokctl cluster under test.
        kwokctl_path: Path to the kwokctl binary.
        runtime: kwokctl runtime flavor the cluster was created with.
        kubeconfig_dir: Directory the retrieved kubeconfig is written to.
        kubeconfig_user: User requested from ``kwokctl get kubeconfig``.
        kubeconfig_group: Group requested from ``kwokctl get kubeconfig``.
        fake_node_name: Node resource scaled by the scale-node step.
        fake_pod_name: Pod resource scaled by the scale-pod step.
        replicas: Replica count both scale steps request.
        etcd_key: Key fetched by the etcdctl step.
        etcd_expected: Fragment the etcdctl output must contain.
        command_timeout: Per-command timeout in seconds.
        http_timeout: Per-request timeout in seconds.
        verify_tls: Whether HTTPS endpoints must present a trusted certificate.
        optional_steps: Steps whose failure is reported but does not fail the run.
        thin_runtimes: Runtimes that do not expose control-plane components.
        min_healthy_targets: Minimum healthy Prometheus targets.
        retry: Polling policy for retried steps.
        endpoints: Health endpoint URLs.
    """

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, env_nested_delimiter="__", extra="ignore")

    cluster_name: str = DEFAULT_CLUSTER_NAME
    kwokctl_path: str = DEFAULT_KWOKCTL_PATH
    runtime: str = DEFAULT_RUNTIME
    kubeconfig_dir: Path = Path(".")
    kubeconfig_user: str = DEFAULT_KUBECONFIG_USER
    kubeconfig_group: str = DEFAULT_KUBECONFIG_GROUP
    fake_node_name: str = DEFAULT_FAKE_NODE
    fake_pod_name: str = DEFAULT_FAKE_POD
    replicas: int = Field(default=DEFAULT_REPLICAS, ge=0)
    etcd_key: str = DEFAULT_ETCD_KEY
    etcd_expected: str = DEFAULT_ETCD_EXPECTED
    command_timeout: float = Field(default=DEFAULT_COMMAND_TIMEOUT, gt=0)
    http_timeout: float = Field(default=DEFAULT_HTTP_TIMEOUT, gt=0)
    verify_tls: bool = False
    optional_steps: list[str] = Field(default_factory=list)
    thin_runtimes: list[str] = Field(default_factory=lambda: list(THIN_RUNTIMES))
    min_healthy_targets: int = Field(default=DEFAULT_MIN_HEALTHY_TARGETS, ge=1)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    endpoints: EndpointConfig = Field(default_factory=EndpointConfig)

    @property
    def kubeconfig_path(self) -> Path:
        return self.kubeconfig_dir / f"{self.cluster_name}{KUBECONFIG_SUFFIX}"


# ============================================================================
# Config resolution
# ============================================================================

def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def read_config_file(path: Path) -> dict[str, Any]:
    """Read a YAML config file into a dictionary.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed mapping, or an empty dict for an empty file.

    Raises:
        ValueError: If the top-level YAML value is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def load_config(path: Path | None = None, overrides: dict[str, Any] | None = None) -> WorkableConfig:
    """Merge CLI overrides, the config file, env vars, and defaults.

    Resolution priority: CLI overrides > config file > KWOK_E2E_* env > defaults.

    Args:
        path: Optional YAML config file.
        overrides: CLI-provided values; nested sections may be partial dicts.

    Returns:
        Validated configuration.
    """
    values: dict[str, Any] = read_config_file(path) if path is not None else {}
    if overrides:
        values = _deep_merge(values, overrides)
    return WorkableConfig(**values)


def resolve_config(
    config_file: Path | None = None,
    cluster_name: str | None = None,
    kwokctl_path: str | None = None,
    runtime: str | None = None,
    attempts: int | None = None,
    delay: float | None = None,
    optional_steps: list[str] | None = None,
) -> WorkableConfig:
    """Collect CLI overrides that were actually given and load the config.

    Args:
        config_file: Optional YAML config file.
        cluster_name: CLI override for the cluster name, or None.
        kwokctl_path: CLI override for the kwokctl binary, or None.
        runtime: CLI override for the runtime flavor, or None.
        attempts: CLI override for the retry attempt budget, or None.
        delay: CLI override for the retry delay, or None.
        optional_steps: Steps to mark optional, or None/empty to keep config.

    Returns:
        Validated configuration.
    """
    overrides: dict[str, Any] = {}
    if cluster_name is not None:
        overrides["cluster_name"] = cluster_name
    if kwokctl_path is not None:
        overrides["kwokctl_path"] = kwokctl_path
    if runtime is not None:
        overrides["runtime"] = runtime
    retry: dict[str, Any] = {}
    if attempts is not None:
        retry["max_attempts"] = attempts
    if delay is not None:
        retry["delay"] = delay
    if retry:
        overrides["retry"] = retry
    if optional_steps:
        overrides["optional_steps"] = list(optional_steps)
    return load_config(config_file, overrides)


# ============================================================================
# Display
# ============================================================================

def display_config(config: WorkableConfig, os_family: str) -> None:
    """Print the resolved configuration.

    Args:
        config: Resolved verification configuration.
        os_family: Detected operating system family.
    """
    console.print(Panel.fit("Configuration", style="bold blue"))
    console.print("[yellow]Cluster:[/yellow]")
    console.print(f"  cluster_name    : {config.cluster_name}")
    console.print(f"  kwokctl_path    : {config.kwokctl_path}")
    console.print(f"  runtime         : {config.runtime}")
    console.print(f"  os_family       : {os_family}")
    console.print(f"  kubeconfig      : {config.kubeconfig_path}")
    console.print("[yellow]Retry:[/yellow]")
    console.print(f"  max_attempts    : {config.retry.max_attempts}")
    console.print(f"  delay           : {config.retry.delay}s")
    if config.optional_steps:
        console.print("[yellow]Optional steps:[/yellow]")
        for step in config.optional_steps:
            console.print(f"  {step}")

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

"""Command-backed probes against a kwokctl cluster.

Every factory returns a zero-argument callable that returns None when the
check passes and raises a ``ProbeError`` otherwise. HTTP probes live in
``kwok_e2e.health``.
"""

from __future__ import annotations

from pathlib import Path

from kwok_e2e.constants import (
    DEFAULT_ETCD_EXPECTED,
    DEFAULT_ETCD_KEY,
    KUBECONFIG_FILE_MODE,
    POD_RUNNING_MARKER,
)
from kwok_e2e.errors import ExternalInvocationFailure, UnexpectedOutput
from kwok_e2e.retry import Probe
from kwok_e2e.runner import Kubectl, Kwokctl, checked


def context_probe(kubectl: Kubectl, expected: str) -> Probe:
    """Active kubectl context must be *expected*."""

    def _probe() -> None:
        result = kubectl.current_context()
        current = checked(result, "error getting current context").strip()
        if current != expected:
            raise UnexpectedOutput(
                f"current context is {current!r}, expected {expected!r}",
                detail=result.stdout,
                hint=result.command_line,
            )

    return _probe


def scale_probe(kwokctl: Kwokctl, kind: str, name: str, replicas: int) -> Probe:
    """``kwokctl scale`` must exit cleanly; output is not inspected."""

    def _probe() -> None:
        checked(kwokctl.scale(kind, name, replicas), f"failed to scale {kind} {name}")

    return _probe


def pods_running_probe(kwokctl: Kwokctl) -> Probe:
    """``kwokctl kubectl get pod`` must list a Running pod."""

    def _probe() -> None:
        result = kwokctl.kubectl("get", "pod")
        output = checked(result, "failed to list pods")
        if POD_RUNNING_MARKER not in output:
            raise UnexpectedOutput("pod not running", detail=output, hint=result.command_line)

    return _probe


def write_kubeconfig_probe(kwokctl: Kwokctl, path: Path, user: str, group: str) -> Probe:
    """Fetch a kubeconfig for *user*/*group* and write it to *path*.

    Rewriting an unchanged kubeconfig leaves the file identical.
    """

    def _probe() -> None:
        kubeconfig = checked(kwokctl.get_kubeconfig(user, group), "failed to get kubeconfig")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(kubeconfig)
            path.chmod(KUBECONFIG_FILE_MODE)
        except OSError as exc:
            raise ExternalInvocationFailure(f"failed to write kubeconfig {path}: {exc}") from exc

    return _probe


def kubeconfig_access_probe(kubectl: Kubectl, path: Path) -> Probe:
    """kubectl with the written kubeconfig must see a Running pod."""

    def _probe() -> None:
        result = kubectl.get_pods(kubeconfig=str(path))
        output = checked(result, "failed to list pods with kubeconfig")
        if POD_RUNNING_MARKER not in output:
            raise UnexpectedOutput("kubeconfig not working", detail=output, hint=result.command_line)

    return _probe


def etcdctl_get_probe(kwokctl: Kwokctl, key: str = DEFAULT_ETCD_KEY, expected: str = DEFAULT_ETCD_EXPECTED) -> Probe:
    """``kwokctl etcdctl get <key> --keys-only`` must mention *expected*."""

    def _probe() -> None:
        result = kwokctl.etcdctl_get(key)
        output = checked(result, f"failed to get {key} by kwokctl etcdctl in cluster {kwokctl.cluster_name}")
        if expected not in output:
            raise UnexpectedOutput(
                f"{expected!r} not found under {key} in cluster {kwokctl.cluster_name}",
                detail=output,
                hint=result.command_line,
            )

    return _probe

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

"""Constants and defaults for the workable verification."""

from __future__ import annotations

# -- Environment variables --
ENV_PREFIX = "KWOK_E2E_"
ENV_LIVE = "KWOK_E2E_LIVE"

# -- Cluster defaults --
DEFAULT_CLUSTER_NAME = "kwok"
DEFAULT_KWOKCTL_PATH = "kwokctl"
DEFAULT_RUNTIME = "docker"
CONTEXT_PREFIX = "kwok-"

# -- Runtimes without separately exposed control-plane components --
THIN_RUNTIMES = ("kind", "kind-podman")

# -- OS families --
OS_WINDOWS = "windows"

# -- Fake resources --
DEFAULT_FAKE_NODE = "fake-node"
DEFAULT_FAKE_POD = "fake-pod"
DEFAULT_REPLICAS = 1
RESOURCE_NODE = "node"
RESOURCE_POD = "pod"

# -- Kubeconfig --
DEFAULT_KUBECONFIG_USER = "cluster-admin"
DEFAULT_KUBECONFIG_GROUP = "system:masters"
KUBECONFIG_SUFFIX = ".kubeconfig"
KUBECONFIG_FILE_MODE = 0o644
POD_RUNNING_MARKER = "Running"

# -- Etcd --
DEFAULT_ETCD_KEY = "/registry/namespaces/default"
DEFAULT_ETCD_EXPECTED = "default"

# -- Retry policy --
DEFAULT_RETRY_ATTEMPTS = 120
DEFAULT_RETRY_DELAY_SECONDS = 1.0

# -- Timeouts (seconds) --
DEFAULT_COMMAND_TIMEOUT = 60
DEFAULT_HTTP_TIMEOUT = 10

# -- Health endpoints --
DEFAULT_PROMETHEUS_TARGETS_URL = "http://127.0.0.1:9090/api/v1/targets"
DEFAULT_JAEGER_SERVICES_URL = "http://127.0.0.1:16686/api/services"
DEFAULT_KWOK_CONTROLLER_HEALTHZ_URL = "http://127.0.0.1:10247/healthz"
DEFAULT_ETCD_HEALTH_URL = "http://127.0.0.1:2400/health"
DEFAULT_KUBE_SCHEDULER_HEALTHZ_URL = "https://127.0.0.1:10250/healthz"
DEFAULT_KUBE_CONTROLLER_MANAGER_HEALTHZ_URL = "https://127.0.0.1:10260/healthz"

# -- Health predicates --
HEALTHZ_OK = "ok"
HEALTHY_TARGET_MARKER = '"health":"up"'
DEFAULT_MIN_HEALTHY_TARGETS = 6
ETCD_HEALTH_MARKER = '"health"'
HTTP_STATUS_OK = 200

# -- Step names --
STEP_CURRENT_CONTEXT = "current-context"
STEP_SCALE_NODE = "scale-node"
STEP_SCALE_POD = "scale-pod"
STEP_PODS_RUNNING = "pods-running"
STEP_WRITE_KUBECONFIG = "write-kubeconfig"
STEP_KUBECONFIG_ACCESS = "kubeconfig-access"
STEP_CONTROLLER_MANAGER = "kube-controller-manager-healthz"
STEP_SCHEDULER = "kube-scheduler-healthz"
STEP_ETCD_HEALTH = "etcd-health"
STEP_ETCDCTL_GET = "etcdctl-get"
STEP_PROMETHEUS = "prometheus-targets"
STEP_JAEGER = "jaeger-services"
STEP_KWOK_CONTROLLER = "kwok-controller-healthz"

# -- Prerequisites --
REQUIRED_COMMANDS = ("kubectl",)

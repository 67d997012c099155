"""Shared fakes: a scripted command runner and an in-memory HTTP session."""

from __future__ import annotations

import os

import pytest

from kwok_e2e.config import RetryPolicy, WorkableConfig
from kwok_e2e.constants import (
    DEFAULT_ETCD_HEALTH_URL,
    DEFAULT_JAEGER_SERVICES_URL,
    DEFAULT_KUBE_CONTROLLER_MANAGER_HEALTHZ_URL,
    DEFAULT_KUBE_SCHEDULER_HEALTHZ_URL,
    DEFAULT_KWOK_CONTROLLER_HEALTHZ_URL,
    DEFAULT_PROMETHEUS_TARGETS_URL,
)
from kwok_e2e.environment import Environment
from kwok_e2e.runner import CommandResult

KUBECONFIG = "apiVersion: v1\nkind: Config\nclusters: []\n"
PODS_RUNNING = "NAME         READY   STATUS    RESTARTS   AGE\nfake-pod-0   1/1     Running   0          5s\n"
PODS_PENDING = "NAME         READY   STATUS    RESTARTS   AGE\nfake-pod-0   0/1     Pending   0          1s\n"


def targets_body(healthy: int) -> str:
    targets = ",".join('{"job":"j%d","health":"up"}' % i for i in range(healthy))
    return '{"status":"success","data":{"activeTargets":[%s]}}' % targets


def ok(stdout: str = "", args: tuple[str, ...] = ()) -> CommandResult:
    return CommandResult(args, True, stdout, "", 0)


def fail(stderr: str = "boom", args: tuple[str, ...] = (), returncode: int = 1) -> CommandResult:
    return CommandResult(args, False, "", stderr, returncode)


class FakeRunner:
    """Command runner that answers like a healthy kwokctl cluster unless scripted."""

    def __init__(self, cluster_name: str = "kwok") -> None:
        self.cluster_name = cluster_name
        self.calls: list[list[str]] = []
        self.timeouts: list[float] = []
        self.scripted: dict[str, list[CommandResult]] = {}

    def script(self, key: str, *results: CommandResult) -> None:
        """Queue results for *key*; the last one repeats once the queue drains."""
        self.scripted[key] = list(results)

    @staticmethod
    def key(args: list[str]) -> str:
        if args[0] == "kubectl":
            if "current-context" in args:
                return "current-context"
            return "kubeconfig-get-pod"
        sub = args[3]
        if sub == "scale":
            return f"scale-{args[4]}"
        if sub == "kubectl":
            return "get-pod"
        if sub == "get":
            return "get-kubeconfig"
        return sub

    def count(self, key: str) -> int:
        return sum(1 for call in self.calls if self.key(call) == key)

    def __call__(self, args: list[str], timeout: float) -> CommandResult:
        self.calls.append(list(args))
        self.timeouts.append(timeout)
        key = self.key(args)
        queue = self.scripted.get(key)
        if queue:
            return queue.pop(0) if len(queue) > 1 else queue[0]
        return self._default(key)

    def _default(self, key: str) -> CommandResult:
        if key == "current-context":
            return ok(f"kwok-{self.cluster_name}\n")
        if key in ("get-pod", "kubeconfig-get-pod"):
            return ok(PODS_RUNNING)
        if key == "get-kubeconfig":
            return ok(KUBECONFIG)
        if key == "etcdctl":
            return ok("/registry/namespaces/default\n")
        return ok()


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "") -> None:
        self.status_code = status_code
        self.text = text
        self.closed = False

    def __enter__(self) -> FakeResponse:
        return self

    def __exit__(self, *exc) -> None:
        self.closed = True


HEALTHY_RESPONSES = {
    DEFAULT_PROMETHEUS_TARGETS_URL: (200, targets_body(6)),
    DEFAULT_JAEGER_SERVICES_URL: (200, '{"data":["kwok"]}'),
    DEFAULT_KWOK_CONTROLLER_HEALTHZ_URL: (200, "ok"),
    DEFAULT_ETCD_HEALTH_URL: (200, '{"health":"true","reason":""}'),
    DEFAULT_KUBE_SCHEDULER_HEALTHZ_URL: (200, "ok"),
    DEFAULT_KUBE_CONTROLLER_MANAGER_HEALTHZ_URL: (200, "ok"),
}


class FakeSession:
    """Stand-in for requests.Session serving canned responses per URL."""

    def __init__(self) -> None:
        self.requests: list[dict] = []
        self.responses: list[FakeResponse] = []
        self.scripted: dict[str, list] = {}

    def script(self, url: str, *answers) -> None:
        """Queue (status, body) tuples or exceptions for *url*; the last one repeats."""
        self.scripted[url] = list(answers)

    def urls(self) -> list[str]:
        return [r["url"] for r in self.requests]

    def get(self, url: str, timeout: float | None = None, verify: bool = True) -> FakeResponse:
        self.requests.append({"url": url, "timeout": timeout, "verify": verify})
        queue = self.scripted.get(url)
        if queue:
            answer = queue.pop(0) if len(queue) > 1 else queue[0]
        else:
            answer = HEALTHY_RESPONSES.get(url, (404, "not found"))
        if isinstance(answer, Exception):
            raise answer
        response = FakeResponse(*answer)
        self.responses.append(response)
        return response

    def close(self) -> None:
        pass


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("KWOK_E2E_") and key != "KWOK_E2E_LIVE":
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def config(tmp_path):
    return WorkableConfig(
        cluster_name="kwok",
        kubeconfig_dir=tmp_path,
        retry=RetryPolicy(max_attempts=3, delay=0.5),
    )


@pytest.fixture
def linux_docker():
    return Environment(os_family="linux", runtime="docker")


@pytest.fixture
def sleeps():
    return []

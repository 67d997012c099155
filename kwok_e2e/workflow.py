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

"""Declarative verification steps and the sequential workflow runner."""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum

import requests
from rich.panel import Panel

from kwok_e2e import console, logger
from kwok_e2e.config import RetryPolicy, WorkableConfig
from kwok_e2e.constants import (
    CONTEXT_PREFIX,
    ETCD_HEALTH_MARKER,
    HEALTHY_TARGET_MARKER,
    HEALTHZ_OK,
    HTTP_STATUS_OK,
    OS_WINDOWS,
    RESOURCE_NODE,
    RESOURCE_POD,
    STEP_CONTROLLER_MANAGER,
    STEP_CURRENT_CONTEXT,
    STEP_ETCD_HEALTH,
    STEP_ETCDCTL_GET,
    STEP_JAEGER,
    STEP_KUBECONFIG_ACCESS,
    STEP_KWOK_CONTROLLER,
    STEP_PODS_RUNNING,
    STEP_PROMETHEUS,
    STEP_SCALE_NODE,
    STEP_SCALE_POD,
    STEP_SCHEDULER,
    STEP_WRITE_KUBECONFIG,
)
from kwok_e2e.environment import Environment, Inclusion, always, os_family_not, runtime_not_in
from kwok_e2e.errors import (
    DeadlineExceeded,
    ProbeError,
    RetryExhausted,
    StepFailed,
    WorkableError,
)
from kwok_e2e.health import BodyContains, BodyEquals, HealthPredicate, HttpHealthProbe, MinOccurrences, StatusIs
from kwok_e2e.probes import (
    context_probe,
    etcdctl_get_probe,
    kubeconfig_access_probe,
    pods_running_probe,
    scale_probe,
    write_kubeconfig_probe,
)
from kwok_e2e.retry import Deadline, Probe, retry_probe
from kwok_e2e.runner import Kubectl, Kwokctl


# ============================================================================
# Step and result model
# ============================================================================

@dataclass(frozen=True)
class VerificationStep:
    """One named check in the workflow.

    Attributes:
        name: Stable step identifier.
        probe: Zero-argument check raising ``ProbeError`` on failure.
        retried: Whether the probe is polled until it converges.
        required: Whether a failure fails the whole run.
        applies: Predicate selecting the environments the step runs in.
    """

    name: str
    probe: Probe
    retried: bool = False
    required: bool = True
    applies: Inclusion = always


class StepStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StepOutcome:
    name: str
    status: StepStatus
    required: bool = True
    attempts: int = 0
    duration: float = 0.0
    error: WorkableError | None = None


@dataclass
class VerificationReport:
    """Outcomes of one workflow run, in execution order."""

    outcomes: list[StepOutcome] = field(default_factory=list)

    @property
    def failures(self) -> list[StepFailed]:
        return [
            StepFailed(o.name, o.error)
            for o in self.outcomes
            if o.status is StepStatus.FAILED and o.required and o.error is not None
        ]

    @property
    def warnings(self) -> list[StepFailed]:
        return [
            StepFailed(o.name, o.error)
            for o in self.outcomes
            if o.status is StepStatus.FAILED and not o.required and o.error is not None
        ]

    @property
    def failure(self) -> StepFailed | None:
        """First required failure, or None when the run reached AllPassed."""
        failures = self.failures
        return failures[0] if failures else None

    @property
    def passed(self) -> bool:
        return self.failure is None

    def outcome(self, name: str) -> StepOutcome | None:
        return next((o for o in self.outcomes if o.name == name), None)

    def raise_for_failure(self) -> None:
        """Raise the first required failure, if any.

        Raises:
            StepFailed: If any required step failed.
        """
        failure = self.failure
        if failure is not None:
            raise failure from failure.cause


# ============================================================================
# Workable step list
# ============================================================================

def build_workable_steps(
    config: WorkableConfig,
    kwokctl: Kwokctl,
    kubectl: Kubectl,
    session: requests.Session,
    deadline: Deadline | None = None,
) -> list[VerificationStep]:
    """Build the ordered step list that decides if a cluster is workable.

    Args:
        config: Resolved verification configuration.
        kwokctl: kwokctl wrapper bound to the cluster under test.
        kubectl: kubectl wrapper for the active context.
        session: HTTP session shared by all health probes.
        deadline: Optional run deadline threaded into every HTTP call.

    Returns:
        Steps in execution order.
    """
    optional = set(config.optional_steps)
    full_control_plane = runtime_not_in(config.thin_runtimes)
    has_etcdctl = os_family_not(OS_WINDOWS)
    endpoints = config.endpoints
    kubeconfig_path = config.kubeconfig_path

    def step(name: str, probe: Probe, retried: bool = False, applies: Inclusion = always) -> VerificationStep:
        return VerificationStep(name, probe, retried=retried, required=name not in optional, applies=applies)

    def http(name: str, url: str, predicate: HealthPredicate) -> HttpHealthProbe:
        return HttpHealthProbe(
            name, url, predicate, session,
            timeout=config.http_timeout, verify_tls=config.verify_tls, deadline=deadline,
        )

    steps = [
        step(STEP_CURRENT_CONTEXT, context_probe(kubectl, CONTEXT_PREFIX + config.cluster_name)),
        step(STEP_SCALE_NODE, scale_probe(kwokctl, RESOURCE_NODE, config.fake_node_name, config.replicas),
             retried=True),
        step(STEP_SCALE_POD, scale_probe(kwokctl, RESOURCE_POD, config.fake_pod_name, config.replicas),
             retried=True),
        step(STEP_PODS_RUNNING, pods_running_probe(kwokctl), retried=True),
        step(STEP_WRITE_KUBECONFIG, write_kubeconfig_probe(
            kwokctl, kubeconfig_path, config.kubeconfig_user, config.kubeconfig_group)),
        step(STEP_KUBECONFIG_ACCESS, kubeconfig_access_probe(kubectl, kubeconfig_path), retried=True),
        step(STEP_CONTROLLER_MANAGER,
             http("kube controller manager", endpoints.kube_controller_manager_healthz, BodyEquals(HEALTHZ_OK)),
             applies=full_control_plane),
        step(STEP_SCHEDULER,
             http("kube scheduler", endpoints.kube_scheduler_healthz, BodyEquals(HEALTHZ_OK)),
             applies=full_control_plane),
        step(STEP_ETCD_HEALTH,
             http("etcd", endpoints.etcd_health, BodyContains(ETCD_HEALTH_MARKER)),
             applies=full_control_plane),
        step(STEP_ETCDCTL_GET, etcdctl_get_probe(kwokctl, config.etcd_key, config.etcd_expected),
             applies=has_etcdctl),
        step(STEP_PROMETHEUS,
             http("metrics", endpoints.prometheus_targets,
                  MinOccurrences(HEALTHY_TARGET_MARKER, config.min_healthy_targets)),
             retried=True),
        step(STEP_JAEGER, http("jaeger", endpoints.jaeger_services, StatusIs(HTTP_STATUS_OK)), retried=True),
        step(STEP_KWOK_CONTROLLER,
             http("controller", endpoints.kwok_controller_healthz, BodyEquals(HEALTHZ_OK))),
    ]

    unknown = optional - {s.name for s in steps}
    if unknown:
        logger.warning("Ignoring unknown optional steps: %s", ", ".join(sorted(unknown)))
    return steps


def find_step(steps: Sequence[VerificationStep], name: str) -> VerificationStep:
    """Look up a step by name.

    Raises:
        KeyError: If no step has that name.
    """
    for candidate in steps:
        if candidate.name == name:
            return candidate
    raise KeyError(name)


# ============================================================================
# Runner
# ============================================================================

def _report_failure(step: VerificationStep, err: WorkableError) -> None:
    probe_err = err.last_error if isinstance(err, RetryExhausted) else err
    style = "red" if step.required else "yellow"
    console.print(f"[{style}]\u274c {step.name} failed: {err}[/{style}]")
    if isinstance(probe_err, ProbeError):
        if probe_err.hint:
            console.print(f"   {probe_err.hint}", markup=False, highlight=False)
        if probe_err.detail:
            console.print(probe_err.detail, markup=False, highlight=False)


def run_step(
    step: VerificationStep,
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], None] | None = None,
    deadline: Deadline | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> StepOutcome:
    """Execute one step, polling it when it is marked as retried.

    Args:
        step: Step to run.
        policy: Polling policy applied to retried steps.
        sleep: Sleep function handed to the retrier.
        deadline: Optional run deadline.
        clock: Clock used to time the step.

    Returns:
        PASSED or FAILED outcome; non-probe exceptions propagate.
    """
    start = clock()
    try:
        if step.retried:
            attempts = retry_probe(step.probe, policy, name=step.name, sleep=sleep, deadline=deadline)
        else:
            step.probe()
            attempts = 1
    except RetryExhausted as err:
        return StepOutcome(step.name, StepStatus.FAILED, step.required, err.attempts, clock() - start, err)
    except ProbeError as err:
        return StepOutcome(step.name, StepStatus.FAILED, step.required, 1, clock() - start, err)
    return StepOutcome(step.name, StepStatus.PASSED, step.required, attempts, clock() - start)


def run_workflow(
    steps: Sequence[VerificationStep],
    env: Environment,
    policy: RetryPolicy,
    *,
    fail_fast: bool = True,
    sleep: Callable[[float], None] | None = None,
    deadline: Deadline | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> VerificationReport:
    """Run steps sequentially against an environment.

    Steps whose inclusion predicate rejects *env* are recorded as skipped and
    their probes are never called. With *fail_fast* the run stops at the first
    required failure; otherwise every applicable step runs and all failures are
    collected. An expired or cancelled deadline always stops the run.

    Args:
        steps: Steps in execution order.
        env: Environment the inclusion predicates are evaluated against.
        policy: Polling policy for retried steps.
        fail_fast: Stop at the first required failure.
        sleep: Sleep function handed to the retrier.
        deadline: Optional run deadline or cancel signal.
        clock: Clock used to time steps.

    Returns:
        Report of every step that was reached.
    """
    report = VerificationReport()
    console.print(Panel.fit(
        f"Verifying cluster workability ({env.runtime} on {env.os_family})", style="bold blue"))

    for step in steps:
        if not step.applies(env):
            console.print(f"[yellow]\u2139\ufe0f  Skipping {step.name} ({step.applies.description})[/yellow]")
            report.outcomes.append(StepOutcome(step.name, StepStatus.SKIPPED, step.required))
            continue

        if deadline is not None and deadline.expired:
            err = DeadlineExceeded(f"{deadline.reason} before step {step.name}")
            report.outcomes.append(StepOutcome(step.name, StepStatus.FAILED, True, 0, 0.0, err))
            _report_failure(step, err)
            break

        logger.info("Running step %s", step.name)
        outcome = run_step(step, policy, sleep=sleep, deadline=deadline, clock=clock)
        report.outcomes.append(outcome)

        if outcome.status is StepStatus.PASSED:
            suffix = f" after {outcome.attempts} attempts" if outcome.attempts > 1 else ""
            console.print(f"[green]\u2705 {step.name}{suffix}[/green]")
            continue

        _report_failure(step, outcome.error)
        if step.required and fail_fast:
            break

    return report

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

"""Orchestration functions that compose domain modules into workflows."""

from __future__ import annotations

import signal
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

import requests
from rich.panel import Panel

from kwok_e2e import console, logger
from kwok_e2e.config import WorkableConfig
from kwok_e2e.constants import REQUIRED_COMMANDS
from kwok_e2e.environment import Environment
from kwok_e2e.retry import Deadline
from kwok_e2e.runner import Kubectl, Kwokctl, Runner, require_command, run_command
from kwok_e2e.workflow import (
    StepStatus,
    VerificationReport,
    VerificationStep,
    build_workable_steps,
    find_step,
    run_workflow,
)

# ============================================================================
# Internal helpers
# ============================================================================


def _check_prerequisites(config: WorkableConfig) -> None:
    """Check that kubectl and kwokctl are available.

    Args:
        config: Configuration naming the kwokctl binary.

    Raises:
        RuntimeError: If a required command is missing.
    """
    console.print(Panel.fit("Checking prerequisites", style="bold blue"))
    for cmd in (*REQUIRED_COMMANDS, config.kwokctl_path):
        require_command(cmd)
    console.print("[green]\u2705 All required tools are available[/green]")


@contextmanager
def _cancel_on_interrupt(deadline: Deadline) -> Iterator[None]:
    """Turn Ctrl-C into a deadline cancel for the duration of the block."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum, frame) -> None:
        logger.warning("Interrupted; cancelling verification")
        deadline.cancel()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _build_steps(
    config: WorkableConfig,
    run: Runner,
    session: requests.Session,
    deadline: Deadline,
) -> list[VerificationStep]:
    kwokctl = Kwokctl(config.kwokctl_path, config.cluster_name, run=run,
                      timeout=config.command_timeout, deadline=deadline)
    kubectl = Kubectl(run=run, timeout=config.command_timeout, deadline=deadline)
    return build_workable_steps(config, kwokctl, kubectl, session, deadline)


def _print_summary(report: VerificationReport) -> None:
    counts = {status: 0 for status in StepStatus}
    for outcome in report.outcomes:
        counts[outcome.status] += 1
    summary = ", ".join(f"{counts[s]} {s.value}" for s in StepStatus)
    for warning in report.warnings:
        console.print(f"[yellow]\u26a0\ufe0f  Optional step {warning}[/yellow]")
    if report.passed:
        console.print(f"[green]\u2705 Cluster is workable ({summary})[/green]")
    else:
        console.print(f"[red]\u274c Cluster is not workable ({summary})[/red]")


# ============================================================================
# Public API
# ============================================================================


def run_verification(
    config: WorkableConfig,
    *,
    env: Environment | None = None,
    fail_fast: bool = True,
    timeout: float | None = None,
    check_prerequisites: bool = True,
    run: Runner = run_command,
    session: requests.Session | None = None,
    sleep: Callable[[float], None] | None = None,
) -> VerificationReport:
    """Run the full workable verification against a cluster.

    Args:
        config: Resolved verification configuration.
        env: Environment descriptor, or None to detect it from the host.
        fail_fast: Stop at the first required failure.
        timeout: Overall deadline in seconds, or None for no limit.
        check_prerequisites: Whether to check kubectl/kwokctl are installed.
        run: Command runner, injectable for tests.
        session: HTTP session, or None to open one for this run.
        sleep: Sleep function for retries, or None for the deadline's sleep.

    Returns:
        Report of the run; ``report.passed`` is the AllPassed terminal state.

    Raises:
        RuntimeError: If a prerequisite command is missing.
    """
    if env is None:
        env = Environment.detect(config.runtime)
    if check_prerequisites:
        _check_prerequisites(config)

    deadline = Deadline(timeout)
    owns_session = session is None
    if session is None:
        session = requests.Session()
    try:
        steps = _build_steps(config, run, session, deadline)
        with _cancel_on_interrupt(deadline):
            report = run_workflow(steps, env, config.retry, fail_fast=fail_fast, sleep=sleep, deadline=deadline)
    finally:
        if owns_session:
            session.close()

    _print_summary(report)
    return report


def run_single_step(
    config: WorkableConfig,
    name: str,
    *,
    env: Environment | None = None,
    timeout: float | None = None,
    run: Runner = run_command,
    session: requests.Session | None = None,
    sleep: Callable[[float], None] | None = None,
) -> VerificationReport:
    """Run one named step, even when the environment would skip it.

    Args:
        config: Resolved verification configuration.
        name: Step name (see ``kwok-e2e steps list``).
        env: Environment descriptor, or None to detect it from the host.
        timeout: Overall deadline in seconds, or None for no limit.
        run: Command runner, injectable for tests.
        session: HTTP session, or None to open one for this run.
        sleep: Sleep function for retries.

    Returns:
        Report containing the single step's outcome.

    Raises:
        KeyError: If no step has that name.
    """
    if env is None:
        env = Environment.detect(config.runtime)

    deadline = Deadline(timeout)
    owns_session = session is None
    if session is None:
        session = requests.Session()
    try:
        step = find_step(_build_steps(config, run, session, deadline), name)
        if not step.applies(env):
            logger.warning("Step %s would be skipped here (%s); running it anyway",
                           step.name, step.applies.description)
        forced = VerificationStep(step.name, step.probe, retried=step.retried, required=True)
        with _cancel_on_interrupt(deadline):
            report = run_workflow([forced], env, config.retry, sleep=sleep, deadline=deadline)
    finally:
        if owns_session:
            session.close()
    return report


def describe_steps(config: WorkableConfig, env: Environment) -> list[tuple[VerificationStep, bool]]:
    """List workable steps with whether each applies to *env*.

    No command is run and no request is sent; probes are only constructed.

    Args:
        config: Resolved verification configuration.
        env: Environment to evaluate inclusion predicates against.

    Returns:
        Pairs of (step, applies) in execution order.
    """
    with requests.Session() as session:
        steps = _build_steps(config, run_command, session, Deadline())
    return [(step, step.applies(env)) for step in steps]

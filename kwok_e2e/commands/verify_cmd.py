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

"""Verify subcommands (workable, step)."""

from __future__ import annotations

from pathlib import Path

import click
import typer

from kwok_e2e.config import display_config, resolve_config
from kwok_e2e.environment import Environment
from kwok_e2e.orchestrator import run_single_step, run_verification

app = typer.Typer(help="Verify a running kwokctl cluster.")


@app.command()
def workable(
    name: str | None = typer.Option(
        None, "--name", help="Cluster name (overrides KWOK_E2E_CLUSTER_NAME)"),
    kwokctl_path: str | None = typer.Option(
        None, "--kwokctl-path", help="Path to the kwokctl binary"),
    runtime: str | None = typer.Option(
        None, "--runtime", help="Runtime flavor the cluster was created with"),
    config_file: Path | None = typer.Option(
        None, "--config", exists=True, dir_okay=False, help="YAML config file"),
    attempts: int | None = typer.Option(
        None, "--attempts", min=1, help="Attempt budget for retried steps"),
    delay: float | None = typer.Option(
        None, "--delay", min=0, help="Seconds between attempts"),
    timeout: float | None = typer.Option(
        None, "--timeout", click_type=click.FloatRange(min=0, min_open=True), help="Overall deadline in seconds"),
    keep_going: bool = typer.Option(
        False, "--keep-going", help="Run every step and report all failures"),
    optional: list[str] | None = typer.Option(
        None, "--optional", help="Step whose failure only warns (repeatable)"),
    skip_prereq_check: bool = typer.Option(
        False, "--skip-prereq-check", help="Do not check kubectl/kwokctl are installed"),
) -> None:
    """Run every workable check against the cluster.

    Exits non-zero on the first failing step, or after all steps with
    --keep-going.
    """
    config = resolve_config(config_file, name, kwokctl_path, runtime, attempts, delay, optional)
    env = Environment.detect(config.runtime)
    display_config(config, env.os_family)

    report = run_verification(
        config,
        env=env,
        fail_fast=not keep_going,
        timeout=timeout,
        check_prerequisites=not skip_prereq_check,
    )
    if not report.passed:
        raise typer.Exit(code=1)


@app.command()
def step(
    step_name: str = typer.Argument(..., help="Step to run (see 'steps list')"),
    name: str | None = typer.Option(
        None, "--name", help="Cluster name (overrides KWOK_E2E_CLUSTER_NAME)"),
    kwokctl_path: str | None = typer.Option(
        None, "--kwokctl-path", help="Path to the kwokctl binary"),
    runtime: str | None = typer.Option(
        None, "--runtime", help="Runtime flavor the cluster was created with"),
    config_file: Path | None = typer.Option(
        None, "--config", exists=True, dir_okay=False, help="YAML config file"),
    attempts: int | None = typer.Option(
        None, "--attempts", min=1, help="Attempt budget if the step is retried"),
    delay: float | None = typer.Option(
        None, "--delay", min=0, help="Seconds between attempts"),
    timeout: float | None = typer.Option(
        None, "--timeout", click_type=click.FloatRange(min=0, min_open=True), help="Overall deadline in seconds"),
) -> None:
    """Run a single named step."""
    config = resolve_config(config_file, name, kwokctl_path, runtime, attempts, delay)
    try:
        report = run_single_step(config, step_name, timeout=timeout)
    except KeyError:
        raise typer.BadParameter(f"unknown step {step_name!r}", param_hint="STEP_NAME") from None
    if not report.passed:
        raise typer.Exit(code=1)

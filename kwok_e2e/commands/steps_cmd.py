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

"""Steps subcommands (list)."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from kwok_e2e import console
from kwok_e2e.config import resolve_config
from kwok_e2e.environment import Environment
from kwok_e2e.orchestrator import describe_steps

app = typer.Typer(help="Inspect the verification step list.")


@app.command("list")
def list_steps(
    runtime: str | None = typer.Option(
        None, "--runtime", help="Runtime flavor to evaluate against"),
    os_family: str | None = typer.Option(
        None, "--os-family", help="OS family to evaluate against (default: this host)"),
    config_file: Path | None = typer.Option(
        None, "--config", exists=True, dir_okay=False, help="YAML config file"),
    optional: list[str] | None = typer.Option(
        None, "--optional", help="Step to mark optional (repeatable)"),
) -> None:
    """Show every step, in order, and whether it runs here."""
    config = resolve_config(config_file, runtime=runtime, optional_steps=optional)
    env = Environment.detect(config.runtime)
    if os_family is not None:
        env = Environment(os_family=os_family.lower(), runtime=env.runtime)

    table = Table(title=f"Workable steps ({env.runtime} on {env.os_family})")
    table.add_column("#", justify="right")
    table.add_column("Step")
    table.add_column("Retried")
    table.add_column("Required")
    table.add_column("Runs")
    table.add_column("Condition")
    for index, (step, applies) in enumerate(describe_steps(config, env), start=1):
        table.add_row(
            str(index),
            step.name,
            "yes" if step.retried else "no",
            "yes" if step.required else "no",
            "[green]yes[/green]" if applies else "[yellow]skip[/yellow]",
            step.applies.description,
        )
    console.print(table)

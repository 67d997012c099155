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

"""
cli.py - Command line for verifying kwokctl clusters.

Subcommands:
    verify     Run checks against a running cluster (workable, step)
    steps      Inspect the verification step list (list)

Examples:
    # Verify the cluster named "kwok" created with the docker runtime
    kwok-e2e verify workable

    # Verify a kind-backed cluster, reporting every failing check
    kwok-e2e verify workable --name e2e --runtime kind --keep-going

    # Re-run only the Prometheus targets check
    kwok-e2e verify step prometheus-targets --name e2e

    # Show which steps run for a kind cluster on Windows
    kwok-e2e steps list --runtime kind --os-family windows

Environment Variables:
    Every setting can be given as KWOK_E2E_<FIELD>, nested ones with "__":
    - KWOK_E2E_CLUSTER_NAME (default: kwok)
    - KWOK_E2E_KWOKCTL_PATH (default: kwokctl)
    - KWOK_E2E_RUNTIME (default: docker)
    - KWOK_E2E_RETRY__MAX_ATTEMPTS (default: 120)
    - KWOK_E2E_RETRY__DELAY (default: 1.0)
"""

from __future__ import annotations

import logging
import sys

import typer

from kwok_e2e import console
from kwok_e2e.commands import steps_cmd, verify_cmd

app = typer.Typer(
    help="Verify that a kwokctl-created cluster is workable.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


app.add_typer(verify_cmd.app, name="verify")
app.add_typer(steps_cmd.app, name="steps")


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()

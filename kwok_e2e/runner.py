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

"""External command invocation: kwokctl, kubectl, and prerequisite checks."""

from __future__ import annotations

import shlex
import subprocess
from collections.abc import Callable
from dataclasses import dataclass

import sh

from kwok_e2e import logger
from kwok_e2e.constants import DEFAULT_COMMAND_TIMEOUT
from kwok_e2e.errors import ExternalInvocationFailure
from kwok_e2e.retry import Deadline


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command.

    Attributes:
        args: Full argument vector that was executed.
        ok: True if the command ran and exited with status 0.
        stdout: Captured standard output.
        stderr: Captured standard error, or the spawn error message.
        returncode: Exit status, or None if the process never completed.
    """

    args: tuple[str, ...]
    ok: bool
    stdout: str
    stderr: str
    returncode: int | None = None

    @property
    def command_line(self) -> str:
        return shlex.join(self.args)


Runner = Callable[[list[str], float], CommandResult]


def run_command(args: list[str], timeout: float = DEFAULT_COMMAND_TIMEOUT) -> CommandResult:
    """Run a command via subprocess and capture stdout and stderr separately.

    Args:
        args: Program and arguments (e.g. ``["kubectl", "get", "pod"]``).
        timeout: Maximum seconds to wait for the command to complete.

    Returns:
        CommandResult; spawn failures and timeouts yield ``ok=False``.
    """
    logger.debug("Running: %s", shlex.join(args))
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
        )
        return CommandResult(tuple(args), result.returncode == 0, result.stdout, result.stderr, result.returncode)
    except (subprocess.SubprocessError, OSError) as exc:
        return CommandResult(tuple(args), False, "", str(exc))


def checked(result: CommandResult, what: str) -> str:
    """Return stdout of a successful command or raise.

    Args:
        result: Command outcome to inspect.
        what: Short description of the action for the error message.

    Returns:
        The command's stdout.

    Raises:
        ExternalInvocationFailure: If the command failed to run or exited non-zero.
    """
    if result.ok:
        return result.stdout
    status = "did not complete" if result.returncode is None else f"exited with status {result.returncode}"
    raise ExternalInvocationFailure(
        f"{what}: command {status}",
        detail=result.stderr.strip() or result.stdout.strip() or None,
        hint=result.command_line,
    )


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        RuntimeError: If the command is not found.
    """
    try:
        sh.which(cmd)
    except sh.ErrorReturnCode as err:
        raise RuntimeError(f"Required command '{cmd}' not found. Please install it first.") from err


class _CommandLine:
    def __init__(
        self,
        run: Runner = run_command,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
        deadline: Deadline | None = None,
    ) -> None:
        self._run = run
        self._timeout = timeout
        self._deadline = deadline

    def _call(self, args: list[str]) -> CommandResult:
        timeout = self._deadline.timeout(self._timeout) if self._deadline else self._timeout
        return self._run(args, timeout)


class Kwokctl(_CommandLine):
    """kwokctl invocations scoped to one cluster via ``--name``.

    Args:
        path: Path to the kwokctl binary.
        cluster_name: Cluster every invocation targets.
        run: Command runner, injectable for tests.
        timeout: Per-command timeout in seconds.
        deadline: Optional run deadline that clamps the timeout.
    """

    def __init__(
        self,
        path: str,
        cluster_name: str,
        run: Runner = run_command,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
        deadline: Deadline | None = None,
    ) -> None:
        super().__init__(run, timeout, deadline)
        self.path = path
        self.cluster_name = cluster_name

    def _kwokctl(self, *args: str) -> CommandResult:
        return self._call([self.path, "--name", self.cluster_name, *args])

    def scale(self, kind: str, name: str, replicas: int) -> CommandResult:
        return self._kwokctl("scale", kind, name, f"--replicas={replicas}")

    def kubectl(self, *args: str) -> CommandResult:
        return self._kwokctl("kubectl", *args)

    def get_kubeconfig(self, user: str, group: str) -> CommandResult:
        return self._kwokctl("get", "kubeconfig", "--user", user, "--group", group)

    def etcdctl_get(self, key: str, keys_only: bool = True) -> CommandResult:
        args = ["etcdctl", "get", key]
        if keys_only:
            args.append("--keys-only")
        return self._kwokctl(*args)


class Kubectl(_CommandLine):
    """Plain kubectl invocations against the active or a given kubeconfig."""

    def current_context(self) -> CommandResult:
        return self._call(["kubectl", "config", "current-context"])

    def get_pods(self, kubeconfig: str | None = None) -> CommandResult:
        args = ["kubectl"]
        if kubeconfig is not None:
            args += ["--kubeconfig", kubeconfig]
        return self._call([*args, "get", "pod"])

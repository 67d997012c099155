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

"""Exception hierarchy for probes, retries, and workflow runs."""

from __future__ import annotations


class WorkableError(RuntimeError):
    """Base class for every failure raised while verifying a cluster."""


class ProbeError(WorkableError):
    """A single probe invocation failed.

    Attributes:
        detail: Raw command output or HTTP body that caused the failure.
        hint: Shell command that reproduces the check by hand.
    """

    def __init__(self, message: str, *, detail: str | None = None, hint: str | None = None) -> None:
        super().__init__(message)
        self.detail = detail
        self.hint = hint


class UnexpectedOutput(ProbeError):
    """The call succeeded but its output did not satisfy the predicate."""


class ExternalInvocationFailure(ProbeError):
    """The external command or HTTP request itself failed."""


class RetryExhausted(WorkableError):
    """A probe never succeeded before polling stopped.

    Attributes:
        probe_name: Name of the probe that was retried.
        attempts: Number of invocations actually performed.
        last_error: Failure raised by the final invocation.
        reason: Why polling stopped; "retry failed" when the attempt budget ran out.
    """

    def __init__(
        self,
        probe_name: str,
        attempts: int,
        last_error: ProbeError | None,
        reason: str = "retry failed",
    ) -> None:
        noun = "attempt" if attempts == 1 else "attempts"
        message = f"{probe_name}: {reason} after {attempts} {noun}"
        if last_error is not None:
            message += f": {last_error}"
        super().__init__(message)
        self.probe_name = probe_name
        self.attempts = attempts
        self.last_error = last_error
        self.reason = reason


class DeadlineExceeded(WorkableError):
    """The run was cancelled or ran out of time before a step could start."""


class StepFailed(WorkableError):
    """A verification step failed; the run ended in ``FailedAt(step, cause)``.

    Attributes:
        step: Name of the failing step.
        cause: Underlying probe, retry, or deadline failure.
    """

    def __init__(self, step: str, cause: WorkableError) -> None:
        super().__init__(f"{step}: {cause}")
        self.step = step
        self.cause = cause

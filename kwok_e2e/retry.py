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

"""Bounded fixed-delay polling of probes, with an optional run deadline."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_any,
    wait_fixed,
)

from kwok_e2e import logger
from kwok_e2e.config import RetryPolicy
from kwok_e2e.errors import ProbeError, RetryExhausted

Probe = Callable[[], None]

# Smallest timeout handed to a blocking call once the deadline is nearly spent.
MIN_CALL_TIMEOUT = 0.1


class Deadline:
    """Overall time budget for a run, plus an external cancel signal.

    Args:
        seconds: Budget in seconds, or None for no time limit.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(self, seconds: float | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + seconds
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Abort the run; pending sleeps wake up immediately."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> float | None:
        """Seconds left before expiry, or None when unbounded."""
        if self._expires_at is None:
            return None
        return max(self._expires_at - self._clock(), 0.0)

    @property
    def expired(self) -> bool:
        if self.cancelled:
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    @property
    def reason(self) -> str:
        return "cancelled" if self.cancelled else "deadline exceeded"

    def timeout(self, default: float) -> float:
        """Clamp a per-call timeout so it never outlives the deadline.

        Args:
            default: Timeout the call would use without a deadline.

        Returns:
            The smaller of *default* and the remaining budget.
        """
        remaining = self.remaining()
        if remaining is None:
            return default
        return max(min(default, remaining), MIN_CALL_TIMEOUT)

    def sleep(self, seconds: float) -> None:
        """Sleep up to *seconds*, returning early on cancel or expiry."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._cancelled.wait(seconds)


def _log_failed_attempt(name: str, max_attempts: int) -> Callable[[RetryCallState], None]:
    def _before_sleep(retry_state: RetryCallState) -> None:
        err = retry_state.outcome.exception() if retry_state.outcome else None
        logger.debug("%s: attempt %d/%d failed: %s", name, retry_state.attempt_number, max_attempts, err)

    return _before_sleep


def retry_probe(
    probe: Probe,
    policy: RetryPolicy,
    *,
    name: str = "probe",
    sleep: Callable[[float], None] | None = None,
    deadline: Deadline | None = None,
) -> int:
    """Call *probe* until it succeeds or the attempt budget is spent.

    Only ``ProbeError`` failures are retried; anything else propagates
    immediately. The delay is applied between attempts, never after the last.

    Args:
        probe: Zero-argument callable that raises ``ProbeError`` on failure.
        policy: Attempt budget and fixed delay between attempts.
        name: Probe name used in logs and in the exhaustion error.
        sleep: Sleep function; defaults to the deadline's interruptible sleep,
            or ``time.sleep`` when no deadline is given.
        deadline: Optional run deadline; polling stops once it has expired.

    Returns:
        Number of invocations performed, including the successful one.

    Raises:
        ValueError: If ``policy.max_attempts`` is less than 1.
        RetryExhausted: If no invocation succeeded. Carries the last failure.
    """
    if policy.max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {policy.max_attempts}")
    if sleep is None:
        sleep = deadline.sleep if deadline is not None else time.sleep

    stop = stop_after_attempt(policy.max_attempts)
    if deadline is not None:
        stop = stop_any(stop, lambda _state: deadline.expired)

    attempts = 0

    def _attempt() -> None:
        nonlocal attempts
        attempts += 1
        probe()

    retrying = Retrying(
        stop=stop,
        wait=wait_fixed(policy.delay),
        retry=retry_if_exception_type(ProbeError),
        sleep=sleep,
        before_sleep=_log_failed_attempt(name, policy.max_attempts),
    )
    try:
        retrying(_attempt)
    except RetryError as err:
        cause = err.last_attempt.exception()
        if deadline is not None and deadline.expired and attempts < policy.max_attempts:
            reason = deadline.reason
        else:
            reason = "retry failed"
        logger.warning("%s: giving up after %d attempts (%s)", name, attempts, reason)
        raise RetryExhausted(name, attempts, cause, reason) from cause
    return attempts

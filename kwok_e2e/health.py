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

"""HTTP health endpoint probes and their success predicates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import requests
import urllib3

from kwok_e2e import logger
from kwok_e2e.constants import DEFAULT_HTTP_TIMEOUT
from kwok_e2e.errors import ExternalInvocationFailure, UnexpectedOutput
from kwok_e2e.retry import Deadline


class HealthPredicate(Protocol):
    def check(self, status: int, body: str) -> bool: ...

    def describe(self) -> str: ...


@dataclass(frozen=True)
class BodyEquals:
    """Body must equal *expected* exactly (case-sensitive)."""

    expected: str

    def check(self, status: int, body: str) -> bool:
        return body == self.expected

    def describe(self) -> str:
        return f"body == {self.expected!r}"


@dataclass(frozen=True)
class MinOccurrences:
    """Body must contain *marker* at least *minimum* times."""

    marker: str
    minimum: int

    def check(self, status: int, body: str) -> bool:
        return body.count(self.marker) >= self.minimum

    def describe(self) -> str:
        return f"at least {self.minimum} x {self.marker!r}"


@dataclass(frozen=True)
class StatusIs:
    """Response status code must equal *code*; the body is ignored."""

    code: int

    def check(self, status: int, body: str) -> bool:
        return status == self.code

    def describe(self) -> str:
        return f"status == {self.code}"


@dataclass(frozen=True)
class BodyContains:
    """Body must contain *fragment*."""

    fragment: str

    def check(self, status: int, body: str) -> bool:
        return self.fragment in body

    def describe(self) -> str:
        return f"body contains {self.fragment!r}"


class HttpHealthProbe:
    """Single GET against a health endpoint, judged by a predicate.

    Args:
        name: Human-readable subsystem name used in error messages.
        url: Endpoint to query.
        predicate: Success policy for this endpoint.
        session: Shared requests session.
        timeout: Per-request timeout in seconds.
        verify_tls: Whether to verify HTTPS certificates.
        deadline: Optional run deadline that clamps the timeout.
    """

    def __init__(
        self,
        name: str,
        url: str,
        predicate: HealthPredicate,
        session: requests.Session,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        verify_tls: bool = False,
        deadline: Deadline | None = None,
    ) -> None:
        self.name = name
        self.url = url
        self.predicate = predicate
        self._session = session
        self._timeout = timeout
        self._verify = verify_tls
        self._deadline = deadline
        if not verify_tls and url.startswith("https://"):
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    @property
    def hint(self) -> str:
        return f"curl -s {self.url}"

    def __call__(self) -> None:
        timeout = self._deadline.timeout(self._timeout) if self._deadline else self._timeout
        try:
            with self._session.get(self.url, timeout=timeout, verify=self._verify) as resp:
                status = resp.status_code
                body = resp.text
        except requests.RequestException as exc:
            raise ExternalInvocationFailure(f"{self.name} health check failed: {exc}", hint=self.hint) from exc

        if not self.predicate.check(status, body):
            logger.debug("%s: status=%d body=%r", self.name, status, body[:200])
            raise UnexpectedOutput(
                f"{self.name} is not healthy (expected {self.predicate.describe()}, got status {status})",
                detail=body,
                hint=self.hint,
            )

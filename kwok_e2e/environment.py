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

"""Execution environment facts and step inclusion predicates."""

from __future__ import annotations

import platform
from collections.abc import Callable, Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class Environment:
    """Read-only facts used to decide which steps apply.

    Attributes:
        os_family: Lower-cased OS name (``linux``, ``darwin``, ``windows``).
        runtime: kwokctl runtime flavor of the cluster (``docker``, ``kind``, ...).
    """

    os_family: str
    runtime: str

    @classmethod
    def detect(cls, runtime: str) -> Environment:
        return cls(os_family=platform.system().lower(), runtime=runtime)


@dataclass(frozen=True)
class Inclusion:
    """Named predicate deciding whether a step runs in an environment."""

    description: str
    test: Callable[[Environment], bool]

    def __call__(self, env: Environment) -> bool:
        return self.test(env)


always = Inclusion("always", lambda env: True)


def runtime_not_in(flavors: Iterable[str]) -> Inclusion:
    excluded = frozenset(flavors)
    return Inclusion(
        f"runtime not in {', '.join(sorted(excluded))}",
        lambda env: env.runtime not in excluded,
    )


def os_family_not(family: str) -> Inclusion:
    return Inclusion(f"os is not {family}", lambda env: env.os_family != family)

# Copyright 2025 Canonical Ltd.
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

"""Classes and functions for composing service managers."""

__all__ = ["Program", "ServiceManager", "run_program"]

import logging
from abc import abstractmethod
from collections.abc import Callable
from typing import Any, Protocol

from service_libs import host
from service_libs.status import Status

_logger = logging.getLogger(__name__)


class Program(Protocol):  # pragma: no cover
    """Protocol implemented by programs run as a service.

    Notes:
        - `start` should not block. Do the actual work in a separate thread.
        - `stop` should return within a few seconds.
    """

    @abstractmethod
    def start(self, service: "ServiceManager") -> None:  # noqa D102
        raise NotImplementedError

    @abstractmethod
    def stop(self, service: "ServiceManager") -> None:  # noqa D102
        raise NotImplementedError


class ServiceManager(Protocol):  # pragma: no cover
    """Base protocol for defining service managers."""

    @abstractmethod
    def install(self) -> None:  # noqa D102
        raise NotImplementedError

    @abstractmethod
    def uninstall(self) -> None:  # noqa D102
        raise NotImplementedError

    @abstractmethod
    def start(self) -> None:  # noqa D102
        raise NotImplementedError

    @abstractmethod
    def stop(self) -> None:  # noqa D102
        raise NotImplementedError

    @abstractmethod
    def restart(self) -> None:  # noqa D102
        raise NotImplementedError

    @abstractmethod
    def status(self) -> Status:  # noqa D102
        raise NotImplementedError

    @abstractmethod
    def run(self) -> None:  # noqa D102
        raise NotImplementedError

    @abstractmethod
    def logger(self) -> logging.Logger:  # noqa D102
        raise NotImplementedError


def run_program(
    service: ServiceManager,
    program: Program,
    /,
    wait: Callable[[], Any] | None = None,
) -> None:
    """Run `program` as `service` until it is told to stop.

    Starts `program`, waits for a termination signal, then stops `program`.
    If the process is attached to a terminal and no `wait` is given, `program`
    runs in the foreground and nothing is waited for.

    Args:
        service: Service manager `program` is run under.
        program: Program to start and stop.
        wait: Callable blocking until `program` should stop. Defaults to `wait_for_signal`.
    """
    program.start(service)
    if wait is not None:
        wait()
    elif host.is_interactive():
        _logger.debug("running '%s' interactively. not waiting for termination signal", service)
    else:
        host.wait_for_signal()

    program.stop(service)

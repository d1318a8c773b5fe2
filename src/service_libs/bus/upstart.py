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

"""Minimal client for the `upstart` job manager."""

__all__ = ["ADDRESS", "BUS_NAME", "Instance", "Job", "JobState", "UpstartConnection", "dial"]

import logging
from typing import NamedTuple

from jeepney import new_method_call
from jeepney.io.blocking import DBusConnection
from jeepney.wrappers import DBusErrorResponse

from service_libs.errors import Error, NotFoundError, TransportError

from .connection import DEFAULT_TIMEOUT, Connection, authenticate, connect

_logger = logging.getLogger(__name__)

ADDRESS = "unix:abstract=/com/ubuntu/upstart"
BUS_NAME = "com.ubuntu.Upstart"
UPSTART_PATH = "/com/ubuntu/Upstart"
UPSTART_INTERFACE = "com.ubuntu.Upstart0_6"
JOB_INTERFACE = "com.ubuntu.Upstart0_6.Job"
INSTANCE_INTERFACE = "com.ubuntu.Upstart0_6.Instance"
UNKNOWN_JOB_ERROR = "com.ubuntu.Upstart0_6.Error.UnknownJob"


class JobState(NamedTuple):
    """Raw goal and state of a job instance."""

    goal: str
    state: str


class Instance:
    """Live instance of an `upstart` job."""

    def __init__(self, conn: Connection, path: str, /) -> None:
        self._conn = conn
        self._path = path

    @property
    def path(self) -> str:
        """Get the object path of the instance."""
        return self._path

    def goal(self) -> str:
        """Read the goal of the instance, e.g. "start" or "stop"."""
        return self._conn.get_string(self._path, INSTANCE_INTERFACE, "goal")

    def state(self) -> str:
        """Read the state of the instance, e.g. "running" or "post-stop"."""
        return self._conn.get_string(self._path, INSTANCE_INTERFACE, "state")

    def job_state(self) -> JobState:
        """Read the goal and state of the instance."""
        goal = self.goal()
        state = self.state()
        return JobState(goal, state)


class Job:
    """Job known to the `upstart` job manager."""

    def __init__(self, conn: Connection, path: str, /) -> None:
        self._conn = conn
        self._path = path

    @property
    def path(self) -> str:
        """Get the object path of the job."""
        return self._path

    def instances(self) -> list[Instance]:
        """List live instances of the job. A stopped job has no instances.

        Raises:
            TransportError: Raised if the instances cannot be listed.
        """
        message = new_method_call(
            self._conn.address(self._path, JOB_INTERFACE), "GetAllInstances"
        )
        try:
            (paths,) = self._conn.call(message)
        except DBusErrorResponse as e:
            raise TransportError(
                f"cannot list instances of job '{self._path}'. reason: {e.name}: {e.data}"
            )

        return [Instance(self._conn, path) for path in paths]


class UpstartConnection(Connection):
    """Connection to the `upstart` job manager.

    The job manager's private socket ignores the destination of a message, but every
    method call must still be addressed to a bus name, so `BUS_NAME` is used by default.
    """

    def __init__(
        self,
        conn: DBusConnection,
        /,
        bus_name: str = BUS_NAME,
        timeout: float | None = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(conn, bus_name=bus_name, timeout=timeout)

    def job(self, name: str, /) -> Job:
        """Get job `name`.

        Raises:
            NotFoundError: Raised if the job does not exist.
            TransportError: Raised if the job cannot be looked up.
        """
        message = new_method_call(
            self.address(UPSTART_PATH, UPSTART_INTERFACE), "GetJobByName", "s", (name,)
        )
        try:
            (path,) = self.call(message)
        except DBusErrorResponse as e:
            if e.name == UNKNOWN_JOB_ERROR:
                raise NotFoundError(f"job '{name}' does not exist")

            raise TransportError(f"cannot get job '{name}'. reason: {e.name}: {e.data}")

        _logger.debug("found job '%s' at %s", name, path)
        return Job(self, path)


def dial(address: str = ADDRESS, /, timeout: float | None = DEFAULT_TIMEOUT) -> UpstartConnection:
    """Open a connection to the `upstart` job manager.

    The job manager listens on a private socket, so the connection is peer-to-peer
    and does not register with a bus. Messages are still addressed to `BUS_NAME`.

    Raises:
        TransportError: Raised if the job manager cannot be reached.
    """
    sock = connect(address, timeout=timeout)
    try:
        authenticate(sock)
    except Error:
        sock.close()
        raise

    return UpstartConnection(DBusConnection(sock), bus_name=BUS_NAME, timeout=timeout)

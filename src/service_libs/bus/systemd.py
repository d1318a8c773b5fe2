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

"""Minimal client for the `systemd` manager on the system bus."""

__all__ = ["BUS_NAME", "SystemdConnection", "Unit", "UnitState", "dial"]

import logging
from typing import NamedTuple

from jeepney import message_bus, new_method_call
from jeepney.io.blocking import DBusConnection
from jeepney.wrappers import DBusErrorResponse

from service_libs.errors import ControlPlaneError, Error, NotFoundError, TransportError
from service_libs.host import current_user_and_home

from .connection import DEFAULT_TIMEOUT, Connection, Variant, authenticate, connect

_logger = logging.getLogger(__name__)

BUS_NAME = "org.freedesktop.systemd1"
MANAGER_PATH = "/org/freedesktop/systemd1"
MANAGER_INTERFACE = "org.freedesktop.systemd1.Manager"
UNIT_INTERFACE = "org.freedesktop.systemd1.Unit"
NO_SUCH_UNIT_ERROR = "org.freedesktop.systemd1.NoSuchUnit"


class UnitState(NamedTuple):
    """Raw state of a `systemd` unit."""

    load: str
    active: str
    sub: str


class Unit:
    """Unit loaded by the `systemd` manager.

    Only valid while the connection that loaded it is open.
    """

    def __init__(self, conn: Connection, path: str, /) -> None:
        self._conn = conn
        self._path = path

    @property
    def path(self) -> str:
        """Get the object path of the unit."""
        return self._path

    def get_property(self, name: str, /) -> Variant:
        """Read property `name` of the unit."""
        return self._conn.get_property(self._path, UNIT_INTERFACE, name)

    def get_string(self, name: str, /) -> str:
        """Read string property `name` of the unit."""
        return self._conn.get_string(self._path, UNIT_INTERFACE, name)

    def state(self) -> UnitState:
        """Read the load, active, and sub state of the unit.

        Raises:
            PropertyError: Raised if any of the states cannot be read.
        """
        load = self.get_string("LoadState")
        active = self.get_string("ActiveState")
        sub = self.get_string("SubState")
        return UnitState(load, active, sub)


class SystemdConnection(Connection):
    """Authenticated connection to the `systemd` manager."""

    def hello(self) -> str:
        """Register with the bus and return the unique name assigned to this connection."""
        (name,) = self.call(message_bus.Hello())
        return name

    def load_unit(self, name: str, /) -> Unit:
        """Load unit `name`.

        `systemd` loads units on demand, so a loaded unit is not necessarily running.

        Raises:
            NotFoundError: Raised if the unit does not exist.
            TransportError: Raised if the unit cannot be loaded.
        """
        message = new_method_call(
            self.address(MANAGER_PATH, MANAGER_INTERFACE), "LoadUnit", "s", (name,)
        )
        try:
            (path,) = self.call(message)
        except DBusErrorResponse as e:
            if e.name == NO_SUCH_UNIT_ERROR:
                raise NotFoundError(f"unit '{name}' does not exist")

            raise TransportError(f"cannot load unit '{name}'. reason: {e.name}: {e.data}")

        _logger.debug("loaded unit '%s' at %s", name, path)
        return Unit(self, path)


def dial(address: str = "SYSTEM", /, timeout: float | None = DEFAULT_TIMEOUT) -> SystemdConnection:
    """Open an authenticated connection to the `systemd` manager.

    Args:
        address: D-Bus address of the bus to connect to. Defaults to the system bus.
        timeout: Seconds to wait for each reply before giving up.

    Raises:
        AuthError: Raised if the current user cannot be resolved or authenticated.
        TransportError: Raised if the bus cannot be reached or the handshake fails.
    """
    sock = connect(address, timeout=timeout)
    try:
        user, home = current_user_and_home()
        _logger.debug("authenticating with bus as user '%s' (home %s)", user, home)
        authenticate(sock)
    except Error:
        sock.close()
        raise

    conn = SystemdConnection(DBusConnection(sock), bus_name=BUS_NAME, timeout=timeout)
    try:
        name = conn.hello()
    except (ControlPlaneError, DBusErrorResponse) as e:
        conn.close()
        raise TransportError("handshake failed") from e

    _logger.debug("connected to system bus as %s", name)
    return conn

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

"""Connections to D-Bus control planes exposed by init systems."""

__all__ = ["DEFAULT_TIMEOUT", "Connection", "Variant", "authenticate", "connect"]

import logging
import socket
from typing import Any, NamedTuple

from jeepney import DBusAddress, Properties
from jeepney.auth import BEGIN, AuthenticationError, Authenticator
from jeepney.bus import get_bus
from jeepney.io.blocking import DBusConnection
from jeepney.low_level import HeaderFields, Message
from jeepney.wrappers import DBusErrorResponse, unwrap_msg

from service_libs.errors import AuthError, PropertyError, TransportError

_logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class Variant(NamedTuple):
    """Typed value read from a control plane."""

    signature: str
    value: Any


def connect(address: str, /, timeout: float | None = DEFAULT_TIMEOUT) -> socket.socket:
    """Open a transport to the control plane listening on `address`.

    Args:
        address: D-Bus address, or "SYSTEM" for the system bus.
        timeout: Seconds to wait for the control plane before giving up.

    Raises:
        TransportError: Raised if the control plane cannot be reached.
    """
    try:
        path = get_bus(address)
    except (KeyError, RuntimeError, ValueError) as e:
        raise TransportError(f"cannot parse control plane address '{address}'. reason: {e}")

    sock = socket.socket(family=socket.AF_UNIX)
    sock.settimeout(timeout)
    try:
        _logger.debug("connecting to control plane at %r", path)
        sock.connect(path)
    except OSError as e:
        sock.close()
        raise TransportError(f"cannot connect to control plane at '{address}'. reason: {e}")

    return sock


def authenticate(sock: socket.socket, /) -> None:
    """Authenticate over `sock` using the `EXTERNAL` mechanism.

    The socket is left in blocking mode once authentication completes.

    Raises:
        AuthError: Raised if the control plane rejects the credentials.
        TransportError: Raised if the connection fails during authentication.
    """
    authenticator = Authenticator()
    try:
        for data in authenticator:
            sock.sendall(data)
            reply = sock.recv(1024)
            if not reply:
                raise ConnectionResetError("connection closed by control plane")

            authenticator.feed(reply)

        sock.sendall(BEGIN)
    except AuthenticationError as e:
        raise AuthError(f"control plane rejected authentication. reason: {e}")
    except OSError as e:
        raise TransportError(f"connection failed during authentication. reason: {e}")

    sock.settimeout(None)


class Connection:
    """Authenticated session with a D-Bus control plane.

    Connections are closed on exit when used as a context manager.

    Args:
        conn: Authenticated `jeepney` connection.
        bus_name: Name the remote peer is addressed by. Every method call needs one,
            even over a peer-to-peer connection.
        timeout: Seconds to wait for each reply before giving up.
    """

    def __init__(
        self,
        conn: DBusConnection,
        /,
        bus_name: str,
        timeout: float | None = DEFAULT_TIMEOUT,
    ) -> None:
        self._conn = conn
        self._bus_name = bus_name
        self._timeout = timeout

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *_) -> None:
        self.close()

    def close(self) -> None:
        """Close the connection."""
        self._conn.close()

    def address(self, path: str, interface: str) -> DBusAddress:
        """Get the address of the remote object at `path` implementing `interface`."""
        return DBusAddress(path, bus_name=self._bus_name, interface=interface)

    def call(self, message: Message, /) -> tuple:
        """Send `message` and return the body of the reply.

        Raises:
            TransportError: Raised if the request cannot be delivered or times out.
            jeepney.wrappers.DBusErrorResponse: Raised if the control plane returns an error.
        """
        try:
            reply = self._conn.send_and_get_reply(message, timeout=self._timeout)
        except OSError as e:
            member = message.header.fields.get(HeaderFields.member)
            raise TransportError(f"call to '{member}' on control plane failed. reason: {e}")

        return unwrap_msg(reply)

    def get_property(self, path: str, interface: str, name: str) -> Variant:
        """Read property `name` of `interface` on the remote object at `path`.

        Raises:
            PropertyError: Raised if the property cannot be read.
        """
        try:
            (value,) = self.call(Properties(self.address(path, interface)).get(name))
        except DBusErrorResponse as e:
            raise PropertyError(
                f"cannot read property '{interface}.{name}' of '{path}'. "
                + f"reason: {e.name}: {e.data}"
            )

        return Variant(*value)

    def get_string(self, path: str, interface: str, name: str) -> str:
        """Read string property `name` of `interface` on the remote object at `path`.

        Raises:
            PropertyError: Raised if the property cannot be read or is not a string.
        """
        prop = self.get_property(path, interface, name)
        if prop.signature != "s":
            raise PropertyError(
                f"property '{interface}.{name}' of '{path}' has type '{prop.signature}'. "
                + "expected type 's'"
            )

        return prop.value

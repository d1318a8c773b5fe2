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

"""Unit tests for the `systemd` control plane client."""

from unittest.mock import Mock

import pytest
from fake_bus import FakeBus
from pytest_mock import MockerFixture

from service_libs.bus import systemd
from service_libs.errors import (
    AuthError,
    NotFoundError,
    PropertyError,
    TransportError,
)

MANAGER_PATH = "/org/freedesktop/systemd1"
UNIT_PATH = "/org/freedesktop/systemd1/unit/example_2eservice"
UNIT_INTERFACE = "org.freedesktop.systemd1.Unit"
HELLO = ("/org/freedesktop/DBus", "Hello", ())


def unit_properties(**properties) -> dict:
    """Create fake bus replies for reading unit properties."""
    return {
        (UNIT_PATH, "Get", (UNIT_INTERFACE, name)): ("v", (value,))
        for name, value in properties.items()
    }


@pytest.fixture
def bus() -> FakeBus:
    """Create a fake system bus with a running `example` unit."""
    return FakeBus(
        {
            HELLO: ("s", (":1.42",)),
            (MANAGER_PATH, "LoadUnit", ("example.service",)): ("o", (UNIT_PATH,)),
            (MANAGER_PATH, "LoadUnit", ("ghost.service",)): (
                "org.freedesktop.systemd1.NoSuchUnit"
            ),
            (MANAGER_PATH, "LoadUnit", ("broken.service",)): (
                "org.freedesktop.DBus.Error.AccessDenied"
            ),
            **unit_properties(
                LoadState=("s", "loaded"),
                ActiveState=("s", "active"),
                SubState=("s", "running"),
            ),
        }
    )


@pytest.fixture
def conn(bus) -> systemd.SystemdConnection:
    """Create a connection to the fake system bus."""
    return systemd.SystemdConnection(bus, bus_name=systemd.BUS_NAME)


class TestDial:
    """Test the `dial` function."""

    @pytest.fixture
    def mock_socket(self, mocker: MockerFixture) -> Mock:
        """Mock opening and authenticating a socket to the system bus."""
        mocker.patch(
            "service_libs.bus.systemd.current_user_and_home", return_value=("root", "/root")
        )
        mocker.patch("service_libs.bus.systemd.authenticate")
        return mocker.patch("service_libs.bus.systemd.connect").return_value

    def test_dial(self, mocker: MockerFixture, mock_socket, bus) -> None:
        """Test that `dial` connects, authenticates, and says hello."""
        mock_conn = mocker.patch("service_libs.bus.systemd.DBusConnection", return_value=bus)
        conn = systemd.dial()

        assert isinstance(conn, systemd.SystemdConnection)
        mock_conn.assert_called_once_with(mock_socket)
        assert bus.members() == ["Hello"]
        assert not bus.closed

    def test_dial_handshake_failed(self, mocker: MockerFixture, mock_socket) -> None:
        """Test that `dial` raises `TransportError` and closes if hello fails."""
        bus = FakeBus({HELLO: "org.freedesktop.DBus.Error.AccessDenied"})
        mocker.patch("service_libs.bus.systemd.DBusConnection", return_value=bus)

        with pytest.raises(TransportError) as exec_info:
            systemd.dial()

        assert exec_info.value.message == "handshake failed"
        assert bus.closed

    def test_dial_unknown_user(self, mocker: MockerFixture, mock_socket) -> None:
        """Test that `dial` closes the socket if the current user cannot be resolved."""
        mocker.patch(
            "service_libs.bus.systemd.current_user_and_home",
            side_effect=AuthError("cannot determine home directory of current user"),
        )
        with pytest.raises(AuthError):
            systemd.dial()

        mock_socket.close.assert_called_once()


class TestSystemdConnection:
    """Test the `SystemdConnection` class."""

    def test_load_unit(self, conn) -> None:
        """Test that `load_unit` resolves a unit to its object path."""
        unit = conn.load_unit("example.service")
        assert unit.path == UNIT_PATH

    def test_load_unit_not_found(self, conn) -> None:
        """Test that `load_unit` raises `NotFoundError` for unknown units."""
        with pytest.raises(NotFoundError) as exec_info:
            conn.load_unit("ghost.service")

        assert exec_info.value.message == "unit 'ghost.service' does not exist"

    def test_load_unit_error(self, conn) -> None:
        """Test that `load_unit` raises `TransportError` for other errors."""
        with pytest.raises(TransportError) as exec_info:
            conn.load_unit("broken.service")

        assert exec_info.type is TransportError
        assert "org.freedesktop.DBus.Error.AccessDenied" in exec_info.value.message


class TestUnit:
    """Test the `Unit` class."""

    def test_state(self, conn) -> None:
        """Test that `state` reads the load, active, and sub state in order."""
        state = conn.load_unit("example.service").state()
        assert state == systemd.UnitState("loaded", "active", "running")

    def test_state_aborts_on_first_failure(self) -> None:
        """Test that `state` stops reading once a property cannot be read."""
        bus = FakeBus(
            {
                (MANAGER_PATH, "LoadUnit", ("example.service",)): ("o", (UNIT_PATH,)),
                **unit_properties(LoadState=("s", "loaded"), ActiveState=("b", True)),
            }
        )
        conn = systemd.SystemdConnection(bus, bus_name=systemd.BUS_NAME)

        with pytest.raises(PropertyError) as exec_info:
            conn.load_unit("example.service").state()

        assert "ActiveState" in exec_info.value.message
        assert [message.body[1] for message in bus.sent[1:]] == ["LoadState", "ActiveState"]

    def test_get_property(self, conn) -> None:
        """Test that `get_property` returns typed values."""
        prop = conn.load_unit("example.service").get_property("SubState")
        assert prop.signature == "s"
        assert prop.value == "running"

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

"""Classes and functions for managing services with `systemd`/`systemctl`."""

__all__ = ["SystemdServiceManager", "normalize_unit_state", "render_unit", "systemctl"]

import logging
from collections.abc import Callable
from pathlib import Path
from subprocess import CalledProcessError
from types import MappingProxyType
from typing import Any

from service_libs import host
from service_libs.bus import systemd as bus
from service_libs.config import ServiceConfig
from service_libs.errors import SystemdError, UnmappedStateError, UnsupportedConfigurationError
from service_libs.status import ServiceStatus, Status

from .core import Program, ServiceManager, call, escape_spaces, quote, run_program, write_file
from .env import EnvManager

_logger = logging.getLogger(__name__)

UNIT_DIR = Path("/etc/systemd/system")
ENV_DIR = Path("/etc/sysconfig")

# States of a loaded unit, other than "active", mapped to service status.
_ACTIVE_STATES = MappingProxyType(
    {
        "reloading": ServiceStatus.START_PENDING,
        "inactive": ServiceStatus.STOPPED,
        "failed": ServiceStatus.ERROR,
        "activating": ServiceStatus.START_PENDING,
        "deactivating": ServiceStatus.STOP_PENDING,
    }
)


def systemctl(*args: str, **kwargs: Any) -> tuple[str, int]:  # noqa D417
    """Control systemd units using `systemctl ...` commands.

    Keyword Args:
        stdin: Standard input to pipe to the `systemctl` command.
        check:
            If set to `True`, raise an error if the `systemctl` command
            exits with a non-zero exit code.

    Raises:
        SystemdError:
            Raised if `systemctl` cannot be run, or if a `systemctl` command fails
            and check is set to `True`.
    """
    try:
        result = call("systemctl", *args, **kwargs)
    except CalledProcessError as e:
        raise SystemdError(
            f"systemctl command '{' '.join(e.cmd)}' failed with exit code {e.returncode}. "
            + f"reason: {e.stderr}"
        )
    except OSError as e:
        raise SystemdError(f"cannot run systemctl. reason: {e}")

    return result.stdout, result.returncode


def normalize_unit_state(state: bus.UnitState, /) -> Status:
    """Map the raw state of a `systemd` unit onto a service status."""
    load, active, sub = state
    if load == "error":
        return Status(ServiceStatus.ERROR)

    if load != "loaded":
        return Status(ServiceStatus.ERROR, UnmappedStateError(f"unit is {load}"))

    if active == "active":
        # Sub-states of an active unit are not part of the documented interface.
        if sub == "running":
            return Status(ServiceStatus.RUNNING)
        if sub == "exited":
            return Status(ServiceStatus.STOPPED)

        return Status(ServiceStatus.ERROR, UnmappedStateError(f"unknown sub-state '{sub}'"))

    if active in _ACTIVE_STATES:
        return Status(_ACTIVE_STATES[active])

    return Status(
        ServiceStatus.ERROR,
        UnmappedStateError(f"could not determine state from {tuple(state)}"),
    )


def render_unit(config: ServiceConfig, /) -> str:
    """Render the unit file for the service described by `config`."""
    exec_path = escape_spaces(config.exec_path)
    lines = [
        "[Unit]",
        f"Description={config.description}",
        f"ConditionFileIsExecutable={exec_path}",
        "",
        "[Service]",
        "StartLimitInterval=5",
        "StartLimitBurst=10",
        " ".join([f"ExecStart={exec_path}", *(quote(arg) for arg in config.arguments)]),
    ]
    if config.chroot:
        lines.append(f"RootDirectory={quote(config.chroot)}")
    if config.working_directory:
        lines.append(f"WorkingDirectory={escape_spaces(config.working_directory)}")
    if config.user_name:
        lines.append(f"User={config.user_name}")
    if config.reload_signal:
        lines.append(f'ExecReload=/bin/kill -{config.reload_signal} "$MAINPID"')
    if config.pid_file:
        lines.append(f"PIDFile={quote(config.pid_file)}")

    lines.extend(
        [
            "Restart=always",
            "RestartSec=120",
            f"EnvironmentFile=-{ENV_DIR / config.name}",
            "",
            "[Install]",
            "WantedBy=multi-user.target",
            "",
        ]
    )
    return "\n".join(lines)


class SystemdServiceManager(ServiceManager):
    """Manage a service using `systemd`.

    Args:
        program: Program run by the service.
        config: Configuration of the service.
        dial: Callable returning a new connection to the `systemd` manager.
    """

    def __init__(
        self,
        program: Program,
        config: ServiceConfig,
        /,
        dial: Callable[[], bus.SystemdConnection] = bus.dial,
    ) -> None:
        self._program = program
        self._config = config
        self._dial = dial

    def __str__(self) -> str:
        return str(self._config)

    @property
    def unit(self) -> str:
        """Get the name of the unit managing the service."""
        return f"{self._config.name}.service"

    @property
    def config_path(self) -> Path:
        """Get path to the unit file of the service.

        Raises:
            UnsupportedConfigurationError: Raised if a user service is requested.
        """
        if self._config.user_service:
            raise UnsupportedConfigurationError("user services are not supported on systemd")

        return UNIT_DIR / self.unit

    @property
    def env(self) -> EnvManager:
        """Get manager for the environment file of the service."""
        return EnvManager(ENV_DIR / self._config.name)

    def install(self) -> None:
        """Install the service's unit file and enable the service.

        Raises:
            AlreadyInstalledError: Raised if the unit file already exists.
        """
        path = self.config_path
        write_file(path, render_unit(self._config))
        if self._config.environment:
            self.env.set(self._config.environment)

        systemctl("enable", self.unit)
        systemctl("daemon-reload")
        _logger.info("installed service '%s' to %s", self._config.name, path)

    def uninstall(self) -> None:
        """Disable the service and remove its unit file."""
        path = self.config_path
        systemctl("disable", self.unit)
        path.unlink()
        self.env.remove()
        _logger.info("uninstalled service '%s' from %s", self._config.name, path)

    def start(self) -> None:
        """Start service."""
        systemctl("start", self.unit)

    def stop(self) -> None:
        """Stop service."""
        systemctl("stop", self.unit)

    def restart(self) -> None:
        """Restart service."""
        systemctl("restart", self.unit)

    def status(self) -> Status:
        """Get the status of the service from the `systemd` manager.

        Raises:
            ControlPlaneError: Raised if the state of the unit cannot be read.
        """
        if not self.config_path.exists():
            return Status(ServiceStatus.NOT_INSTALLED)

        with self._dial() as conn:
            state = conn.load_unit(self.unit).state()

        _logger.debug("unit '%s' has state %s", self.unit, state)
        return normalize_unit_state(state)

    def run(self) -> None:
        """Run the service's program until a termination signal is received."""
        run_program(self, self._program, wait=self._config.run_wait)

    def logger(self) -> logging.Logger:
        """Get a logger writing to the console or to syslog."""
        return host.service_logger(self._config.name, interactive=host.is_interactive())

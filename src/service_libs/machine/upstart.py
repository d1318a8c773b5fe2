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

"""Classes and functions for managing services with `upstart`/`initctl`."""

__all__ = ["UpstartServiceManager", "initctl", "normalize_job_state", "render_job"]

import logging
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from subprocess import CalledProcessError
from types import MappingProxyType
from typing import Any

from service_libs import host
from service_libs.bus import upstart as bus
from service_libs.config import ServiceConfig
from service_libs.errors import UnmappedStateError, UnsupportedConfigurationError, UpstartError
from service_libs.status import ServiceStatus, Status

from .core import Program, ServiceManager, call, quote, run_program, write_file

_logger = logging.getLogger(__name__)

JOB_DIR = Path("/etc/init")
RESTART_DELAY = 0.05

START_STATES = MappingProxyType(
    {
        "running": ServiceStatus.RUNNING,
        "starting": ServiceStatus.START_PENDING,
        "pre-start": ServiceStatus.START_PENDING,
        "post-start": ServiceStatus.START_PENDING,
    }
)
STOP_STATES = MappingProxyType(
    {
        "waiting": ServiceStatus.STOPPED,
        "stopping": ServiceStatus.STOP_PENDING,
        "pre-stop": ServiceStatus.STOP_PENDING,
        "post-stop": ServiceStatus.STOP_PENDING,
    }
)


def initctl(*args: str, **kwargs: Any) -> tuple[str, int]:  # noqa D417
    """Control upstart jobs using `initctl ...` commands.

    Keyword Args:
        stdin: Standard input to pipe to the `initctl` command.
        check:
            If set to `True`, raise an error if the `initctl` command
            exits with a non-zero exit code.

    Raises:
        UpstartError:
            Raised if `initctl` cannot be run, or if an `initctl` command fails
            and check is set to `True`.
    """
    try:
        result = call("initctl", *args, **kwargs)
    except CalledProcessError as e:
        raise UpstartError(
            f"initctl command '{' '.join(e.cmd)}' failed with exit code {e.returncode}. "
            + f"reason: {e.stderr}"
        )
    except OSError as e:
        raise UpstartError(f"cannot run initctl. reason: {e}")

    return result.stdout, result.returncode


def normalize_job_state(instances: Sequence[bus.JobState], /) -> Status:
    """Map the raw states of an `upstart` job's instances onto a service status.

    Notes:
        - Only the first instance is considered.
        - A job without instances is stopped.
        - Unknown states are treated as the goal having been reached.
    """
    if not instances:
        return Status(ServiceStatus.STOPPED)

    goal, state = instances[0]
    if goal == "start":
        return Status(START_STATES.get(state, ServiceStatus.RUNNING))
    if goal == "stop":
        return Status(STOP_STATES.get(state, ServiceStatus.STOPPED))

    return Status(ServiceStatus.ERROR, UnmappedStateError(f"unknown goal '{goal}'"))


def render_job(config: ServiceConfig, /) -> str:
    """Render the job configuration for the service described by `config`.

    The job is stopped with SIGINT so the program can run its stop handler.
    """
    lines = [f"# {config.description}", ""]
    if config.display_name:
        lines.append(f'description    "{config.display_name}"')

    lines.extend(["", "kill signal INT"])
    if config.chroot:
        lines.append(f"chroot {config.chroot}")
    if config.working_directory:
        lines.append(f"chdir {config.working_directory}")

    lines.extend(["start on filesystem or runlevel [2345]", "stop on runlevel [!2345]", ""])
    if config.user_name:
        lines.append(f"setuid {config.user_name}")
    for key, value in config.environment.items():
        lines.append(f"env {key}={quote(str(value))}")

    lines.extend(
        [
            "",
            "respawn",
            "respawn limit 10 5",
            "umask 022",
            "",
            "console none",
            "",
            "pre-start script",
            f"    test -x {config.exec_path} || {{ stop; exit 0; }}",
            "end script",
            "",
            "# Start",
            " ".join([f"exec {config.exec_path}", *(quote(arg) for arg in config.arguments)]),
            "",
        ]
    )
    return "\n".join(lines)


class UpstartServiceManager(ServiceManager):
    """Manage a service using `upstart`.

    Args:
        program: Program run by the service.
        config: Configuration of the service.
        dial: Callable returning a new connection to the `upstart` job manager.
    """

    def __init__(
        self,
        program: Program,
        config: ServiceConfig,
        /,
        dial: Callable[[], bus.UpstartConnection] = bus.dial,
    ) -> None:
        self._program = program
        self._config = config
        self._dial = dial

    def __str__(self) -> str:
        return str(self._config)

    @property
    def config_path(self) -> Path:
        """Get path to the job configuration of the service.

        Raises:
            UnsupportedConfigurationError: Raised if a user service is requested.
        """
        # Support for user jobs varies between upstart releases.
        if self._config.user_service:
            raise UnsupportedConfigurationError("user services are not supported on upstart")

        return JOB_DIR / f"{self._config.name}.conf"

    def install(self) -> None:
        """Install the service's job configuration.

        Raises:
            AlreadyInstalledError: Raised if the job configuration already exists.
        """
        path = self.config_path
        write_file(path, render_job(self._config))
        _logger.info("installed service '%s' to %s", self._config.name, path)

    def uninstall(self) -> None:
        """Remove the service's job configuration."""
        path = self.config_path
        path.unlink()
        _logger.info("uninstalled service '%s' from %s", self._config.name, path)

    def start(self) -> None:
        """Start service."""
        initctl("start", self._config.name)

    def stop(self) -> None:
        """Stop service."""
        initctl("stop", self._config.name)

    def restart(self) -> None:
        """Restart service.

        `initctl restart` does not start a stopped job, so the job is stopped then started.
        """
        self.stop()
        time.sleep(RESTART_DELAY)
        self.start()

    def status(self) -> Status:
        """Get the status of the service from the `upstart` job manager.

        Raises:
            ControlPlaneError: Raised if the state of the job cannot be read.
        """
        if not self.config_path.exists():
            return Status(ServiceStatus.NOT_INSTALLED)

        with self._dial() as conn:
            instances = conn.job(self._config.name).instances()
            # Only the first instance decides the status.
            states = [instances[0].job_state()] if instances else []

        _logger.debug("job '%s' has instance states %s", self._config.name, states)
        return normalize_job_state(states)

    def run(self) -> None:
        """Run the service's program until a termination signal is received."""
        run_program(self, self._program, wait=self._config.run_wait)

    def logger(self) -> logging.Logger:
        """Get a logger writing to the console or to syslog."""
        return host.service_logger(self._config.name, interactive=host.is_interactive())

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

"""Configuration record describing a service to install and control."""

__all__ = ["ServiceConfig"]

import os
import sys
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ServiceConfig:
    """Configuration of a managed service.

    Attributes:
        name: Name of the service. Used as the unit or job name on the host.
        display_name: Human-readable name of the service.
        description: Long description of the service.
        executable:
            Absolute path to the program to run. Defaults to the currently running program.
        arguments: Arguments to pass to `executable`.
        working_directory: Directory to change to before starting `executable`.
        user_name: User to run `executable` as.
        chroot: Directory to change the root directory to before starting `executable`.
        reload_signal: Signal sent to the service to reload its configuration, e.g. "HUP".
        pid_file: Location of the PID file written by the service.
        environment: Environment variables to set for the service.
        user_service: Install the service for the current user rather than the system.
        run_wait:
            Callable blocking until the service should stop when run in the background.
            Defaults to waiting for a termination signal.

    Notes:
        - Neither systemd nor upstart support user services. Setting `user_service`
          to `True` causes every operation to fail with `UnsupportedConfigurationError`.
    """

    name: str
    display_name: str = ""
    description: str = ""
    executable: str = ""
    arguments: Sequence[str] = field(default_factory=tuple)
    working_directory: str = ""
    user_name: str = ""
    chroot: str = ""
    reload_signal: str = ""
    pid_file: str = ""
    environment: Mapping[str, str] = field(default_factory=dict)
    user_service: bool = False
    run_wait: Callable[[], None] | None = None

    @property
    def exec_path(self) -> str:
        """Get absolute path to the program to run."""
        if self.executable:
            return self.executable

        return os.path.abspath(sys.argv[0])

    def __str__(self) -> str:
        return self.display_name or self.name

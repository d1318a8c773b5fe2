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

"""Service managers for the init systems supported on Linux machines."""

__all__ = [
    # From `core` module
    "Program",
    "ServiceManager",
    "call",
    "run_program",
    "write_file",
    # From `env.py`
    "EnvManager",
    # From `systemd.py`
    "SystemdServiceManager",
    "normalize_unit_state",
    "systemctl",
    # From `upstart.py`
    "UpstartServiceManager",
    "initctl",
    "normalize_job_state",
]

from service_libs.machine.core import Program, ServiceManager, call, run_program, write_file
from service_libs.machine.env import EnvManager
from service_libs.machine.systemd import SystemdServiceManager, normalize_unit_state, systemctl
from service_libs.machine.upstart import UpstartServiceManager, initctl, normalize_job_state

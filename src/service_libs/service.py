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

"""Select the service manager matching the host's init system."""

__all__ = ["new_service_manager"]

import logging

from service_libs import host
from service_libs.config import ServiceConfig
from service_libs.errors import UnsupportedConfigurationError
from service_libs.machine import (
    Program,
    ServiceManager,
    SystemdServiceManager,
    UpstartServiceManager,
)

_logger = logging.getLogger(__name__)


def new_service_manager(program: Program, config: ServiceConfig, /) -> ServiceManager:
    """Create a service manager for `program` using the host's init system.

    Raises:
        UnsupportedConfigurationError: Raised if no supported init system is detected.
    """
    if host.is_systemd():
        _logger.debug("detected systemd. managing '%s' with systemd", config.name)
        return SystemdServiceManager(program, config)

    if host.is_upstart():
        _logger.debug("detected upstart. managing '%s' with upstart", config.name)
        return UpstartServiceManager(program, config)

    raise UnsupportedConfigurationError("no supported init system detected on host")

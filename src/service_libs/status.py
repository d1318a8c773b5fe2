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

"""Normalized status values reported by every service manager."""

__all__ = ["ServiceStatus", "Status"]

from dataclasses import dataclass
from enum import Enum

from service_libs.errors import UnmappedStateError


class ServiceStatus(Enum):
    """Status of a service, independent of the init system managing it."""

    NOT_INSTALLED = "not-installed"
    RUNNING = "running"
    START_PENDING = "start-pending"
    STOP_PENDING = "stop-pending"
    STOPPED = "stopped"
    ERROR = "error"


@dataclass(frozen=True)
class Status:
    """Result of a status query.

    Attributes:
        state: Normalized status of the service.
        error:
            Explanation of why `state` is `ServiceStatus.ERROR`, if the raw state
            reported by the init system could not be mapped onto a known status.
    """

    state: ServiceStatus
    error: UnmappedStateError | None = None

    @property
    def detail(self) -> str | None:
        """Get the message explaining an `ERROR` status, if any."""
        return self.error.message if self.error else None

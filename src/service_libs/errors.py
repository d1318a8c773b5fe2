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

"""Common errors raised by functions and methods in the `service_libs` package."""


class Error(Exception):
    """Base error used to compose other errors."""

    @property
    def message(self) -> str:
        """Return message passed as first argument to error."""
        return self.args[0]


class AlreadyInstalledError(Error):
    """Error raised if a service definition file already exists."""


class UnsupportedConfigurationError(Error):
    """Error raised if a service configuration cannot be supported by the host."""


class ControlPlaneError(Error):
    """Error raised if an init system control plane request fails."""


class TransportError(ControlPlaneError):
    """Error raised if connecting to or talking with a control plane fails."""


class AuthError(TransportError):
    """Error raised if authenticating with a control plane fails."""


class NotFoundError(ControlPlaneError):
    """Error raised if a unit or job does not exist on the control plane."""


class PropertyError(ControlPlaneError):
    """Error raised if a property is missing or has an unexpected type."""


class UnmappedStateError(Error):
    """Error describing a raw state that does not map onto a known status."""


class ExternalCommandFailedError(Error):
    """Error raised if a delegated command exits with a non-zero exit code."""


class SystemdError(ExternalCommandFailedError):
    """Error raised if a `systemd`-related operation fails."""


class UpstartError(ExternalCommandFailedError):
    """Error raised if an `upstart`-related operation fails."""

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

"""Probe the host machine for its init system, current user, and supervision mode."""

__all__ = [
    "TERMINATION_SIGNALS",
    "current_user_and_home",
    "is_interactive",
    "is_systemd",
    "is_upstart",
    "service_logger",
    "wait_for_signal",
]

import logging
import logging.handlers
import os
import pwd
import signal
import subprocess
from collections.abc import Iterable
from pathlib import Path

from service_libs.errors import AuthError

_logger = logging.getLogger(__name__)

SYSTEMD_RUNTIME_DIR = Path("/run/systemd/system")
UPSTART_UDEV_BRIDGE = Path("/sbin/upstart-udev-bridge")
TERMINATION_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def is_systemd() -> bool:
    """Check if the host is booted with `systemd`."""
    return SYSTEMD_RUNTIME_DIR.exists()


def is_upstart() -> bool:
    """Check if the host is booted with `upstart`."""
    return UPSTART_UDEV_BRIDGE.exists()


def is_interactive() -> bool:
    """Check if the current process is attached to a terminal rather than an init system.

    Services started by an init system are re-parented to PID 1.
    """
    return os.getppid() != 1


def current_user_and_home() -> tuple[str, str]:
    """Get the name and home directory of the current user.

    Falls back to `getent passwd` if the user database cannot be read directly.
    Minimal environments such as some containers do not provide one.

    Raises:
        AuthError: Raised if the current user cannot be resolved.
    """
    try:
        entry = pwd.getpwuid(os.getuid())
        return entry.pw_name, entry.pw_dir
    except KeyError as e:
        _logger.debug("cannot look up current user in user database: %s", e)

    try:
        result = subprocess.run(
            ["sh", "-c", "getent passwd `id -u`"], capture_output=True, text=True, check=True
        )
    except (OSError, subprocess.CalledProcessError) as e:
        raise AuthError(f"cannot resolve current user. reason: {e}")

    fields = result.stdout.strip().split(":")
    if len(fields) < 6:
        raise AuthError("cannot determine home directory of current user")

    return fields[0], fields[5]


def wait_for_signal(signals: Iterable[signal.Signals] = TERMINATION_SIGNALS) -> int:
    """Block the calling thread until one of `signals` is delivered.

    Returns:
        The number of the delivered signal.
    """
    signals = set(signals)
    previous = signal.pthread_sigmask(signal.SIG_BLOCK, signals)
    try:
        _logger.debug("waiting for signals %s", sorted(s.name for s in signals))
        signum = signal.sigwait(signals)
    finally:
        signal.pthread_sigmask(signal.SIG_SETMASK, previous)

    _logger.debug("received signal %s", signum)
    return signum


def service_logger(name: str, /, interactive: bool) -> logging.Logger:
    """Get a logger for service `name`.

    Log records go to the console if `interactive` is `True`, otherwise to syslog.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        if interactive:
            handler = logging.StreamHandler()
        else:
            handler = logging.handlers.SysLogHandler(address="/dev/log")

        handler.setFormatter(logging.Formatter(f"{name}: %(levelname)s %(message)s"))
        logger.addHandler(handler)

    return logger

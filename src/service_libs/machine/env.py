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

"""Manage environment files read by services."""

__all__ = ["EnvManager"]

import logging
from collections.abc import Mapping
from os import PathLike
from pathlib import Path
from typing import Any

import dotenv

_logger = logging.getLogger(__name__)


class EnvManager:
    """Manage environment variables in a service's environment file.

    Notes:
        - The environment file and its parent directory are created on first write.
    """

    def __init__(self, file: str | PathLike) -> None:
        self._file = Path(file)

    def get(self, key: str, /) -> str | None:
        """Get value of an environment variable in the environment file."""
        if not self._file.exists():
            return None

        return dotenv.get_key(self._file, key)

    def set(self, config: Mapping[str, Any], /, quote: bool = True) -> None:
        """Set environment variables in the environment file."""
        self._file.parent.mkdir(parents=True, exist_ok=True)
        self._file.touch(exist_ok=True)
        for key, value in config.items():
            _logger.debug("setting environment variable '%s' in %s", key, self._file)
            dotenv.set_key(
                self._file, key, str(value), quote_mode="always" if quote else "never"
            )

    def remove(self) -> None:
        """Remove the environment file if it exists."""
        self._file.unlink(missing_ok=True)

    @property
    def path(self) -> Path:
        """Get path to the environment file."""
        return self._file

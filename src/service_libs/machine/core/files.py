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

"""Write service definition files."""

__all__ = ["write_file"]

import logging
import os
import tempfile
from os import PathLike
from pathlib import Path

from service_libs.errors import AlreadyInstalledError

_logger = logging.getLogger(__name__)


def write_file(path: str | PathLike, content: str, /, mode: int = 0o644) -> None:
    """Atomically write a new service definition file.

    The content is written to a temporary file next to `path`, then moved into place.

    Raises:
        AlreadyInstalledError: Raised if `path` already exists.
    """
    path = Path(path)
    if path.exists():
        raise AlreadyInstalledError(f"service definition '{path}' already exists")

    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "wt") as fout:
            fout.write(content)
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise

    _logger.debug("wrote service definition '%s'", path)

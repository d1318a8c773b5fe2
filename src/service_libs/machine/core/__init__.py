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

"""Core building blocks shared by the init system service managers."""

__all__ = [
    "Program",
    "ServiceManager",
    "call",
    "escape_spaces",
    "quote",
    "run_program",
    "write_file",
]

from .call import call
from .files import write_file
from .service import Program, ServiceManager, run_program
from .template import escape_spaces, quote

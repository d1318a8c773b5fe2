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

"""Helpers for rendering values into service definition files."""

__all__ = ["escape_spaces", "quote"]


def quote(value: str, /) -> str:
    """Wrap `value` in double quotes, escaping any embedded double quotes."""
    return '"' + value.replace('"', '\\"') + '"'


def escape_spaces(value: str, /) -> str:
    r"""Escape spaces in `value` as `\x20` so it is read as a single word."""
    return value.replace(" ", r"\x20")

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

"""Install, control, and query long-running services across Linux init systems.

### Example Usage

```python3
from service_libs import ServiceConfig, ServiceStatus, new_service_manager


class Program:
    def start(self, service) -> None:
        # Start work in a background thread. Do not block.
        ...

    def stop(self, service) -> None:
        ...


manager = new_service_manager(Program(), ServiceConfig(name="example"))
if manager.status().state is ServiceStatus.NOT_INSTALLED:
    manager.install()
```
"""

__all__ = [
    "ServiceConfig",
    "ServiceManager",
    "ServiceStatus",
    "Status",
    "new_service_manager",
]

from service_libs.config import ServiceConfig
from service_libs.machine import ServiceManager
from service_libs.service import new_service_manager
from service_libs.status import ServiceStatus, Status

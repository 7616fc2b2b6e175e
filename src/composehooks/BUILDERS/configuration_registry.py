# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
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

"""
Registry of per-service hook declarations.
"""
from typing import Any, Dict, Iterator, List, Optional

from ..errors import ConfigurationError
from ..MODELS.service_configuration import ServiceConfiguration

SEQUENCE_FIELDS = frozenset({
    "copy_to_on_start",
    "copy_from_on_dispose",
    "wait_for_http",
    "execute_on_running",
    "execute_on_disposing",
})
SINGLE_FIELDS = frozenset({
    "wait_for_port",
    "wait_for_process",
    "export_on_dispose",
})


class ConfigurationRegistry:
    """
    Maps service names to their ServiceConfiguration.

    A configuration is created the first time a service is referenced.
    Configurations are immutable, so every declaration stores a new value:
    single-valued fields are overwritten, sequence fields are extended.
    """

    def __init__(self):
        self._configs: Dict[str, ServiceConfiguration] = {}

    def get_or_create(self, service: str) -> ServiceConfiguration:
        """
        :raises ConfigurationError: If the service name is empty.
        """
        if not service:
            raise ConfigurationError("Service name must not be empty")
        config = self._configs.get(service)
        if config is None:
            config = ServiceConfiguration(name=service)
            self._configs[service] = config
        return config

    def get(self, service: str) -> Optional[ServiceConfiguration]:
        return self._configs.get(service)

    def set(self, service: str, field: str, value: Any) -> ServiceConfiguration:
        """
        Replaces a single-valued field; the last write wins.
        """
        if field not in SINGLE_FIELDS:
            raise ConfigurationError(f"{field} is not a single-valued hook field")
        config = self.get_or_create(service).model_copy(update={field: value})
        self._configs[service] = config
        return config

    def append(self, service: str, field: str, *items: Any) -> ServiceConfiguration:
        """
        Extends a sequence field, keeping earlier entries in order.
        """
        if field not in SEQUENCE_FIELDS:
            raise ConfigurationError(f"{field} is not a sequence hook field")
        current = self.get_or_create(service)
        config = current.model_copy(update={field: getattr(current, field) + tuple(items)})
        self._configs[service] = config
        return config

    def names(self) -> List[str]:
        return list(self._configs)

    def __contains__(self, service: str) -> bool:
        return service in self._configs

    def __iter__(self) -> Iterator[ServiceConfiguration]:
        return iter(list(self._configs.values()))

    def __len__(self) -> int:
        return len(self._configs)

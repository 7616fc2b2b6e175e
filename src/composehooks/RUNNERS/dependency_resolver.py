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
Dependency resolution for services to determine startup and shutdown order.
"""
from typing import Dict, List
from ..errors import ConfigurationError
from ..MODELS.service_definition import ServiceDefinition


class DependencyResolver:
    """
    Resolves the startup order of services from their depends_on lists.
    """
    def resolve_order(self, services: Dict[str, ServiceDefinition]) -> List[str]:
        """
        Determines the correct order to start services using topological sort.
        Services keep their declaration order wherever dependencies allow.

        :param services: Service definitions keyed by name.
        :return: Service names in the order they should be started.
        :raises ConfigurationError: If a circular dependency is detected.
        """
        ordered: List[str] = []
        visited = set()
        processing = set()

        def visit(name: str):
            if name in processing:
                raise ConfigurationError(f"Circular dependency detected involving {name}")
            if name in visited:
                return
            processing.add(name)
            for dep in services[name].depends_on:
                # Only depend on services defined in the config
                if dep in services:
                    visit(dep)
            processing.remove(name)
            visited.add(name)
            ordered.append(name)

        for name in services:
            visit(name)

        return ordered

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
A compose engine that runs every service as a native process.
"""
import logging
import os
import shutil
from typing import Dict, List, Optional

from ..errors import ComposeHooksError, ConfigurationError
from ..MANAGERS.compose_engine import ComposeEngine
from ..MANAGERS.process_container import ProcessContainer
from ..MODELS.compose_config import ComposeConfig
from ..MODELS.service_definition import ComposeDocument, ServiceDefinition
from ..PARSERS.compose_parser import ComposeParser
from ..UTILS.port_finder import get_free_port, is_port_free
from .dependency_resolver import DependencyResolver

logger = logging.getLogger(__name__)

STATE_DIR = ".composehooks"
DEFAULT_STOP_TIMEOUT = 10.0


class LocalComposeEngine(ComposeEngine):
    """
    Creates one ProcessContainer per compose service under
    <base_dir>/.composehooks/containers/<service> and starts them in
    dependency order.
    """

    def __init__(
        self,
        config: ComposeConfig,
        document: Optional[ComposeDocument] = None,
        base_dir: Optional[str] = None,
    ):
        """
        Initializes the engine.

        :param config: Group settings; compose_file_path is parsed unless document is given.
        :param document: An already parsed compose file.
        :param base_dir: Working directory for the group; defaults to the compose file's directory.
        """
        if document is None:
            if not config.compose_file_path:
                raise ConfigurationError("Cannot create services without a docker-compose file")
            document = ComposeParser().parse(config.compose_file_path)
        if base_dir is None:
            base_dir = os.path.dirname(os.path.abspath(config.compose_file_path or "."))

        if config.force_recreate and config.no_recreate:
            raise ConfigurationError("force_recreate and no_recreate are mutually exclusive")

        self.config = config
        self.document = document
        self.base_dir = os.path.abspath(base_dir)
        self.state_dir = os.path.join(self.base_dir, STATE_DIR)
        if config.alternative_service_name:
            # Groups sharing a directory keep apart by name
            self.state_dir = os.path.join(self.state_dir, config.alternative_service_name)
        self.resolver = DependencyResolver()
        self.service_ports: Dict[str, Dict[int, int]] = {}
        self._containers: Dict[str, ProcessContainer] = {}

    @property
    def services(self) -> Dict[str, ServiceDefinition]:
        """Services selected by the config, all of them when none are named."""
        if not self.config.services:
            return dict(self.document.services)
        missing = [name for name in self.config.services if name not in self.document.services]
        if missing:
            raise ConfigurationError(f"Unknown services: {', '.join(missing)}")
        return {name: self.document.services[name] for name in self.config.services}

    def allocate_ports(self, service_def: ServiceDefinition) -> Dict[int, int]:
        """
        Allocates host ports for a service based on its definition.

        :param service_def: The service definition.
        :return: Mapping from container port to allocated host port.
        :raises ComposeHooksError: If a fixed host port is already taken.
        """
        mappings = {}
        for container_port, host_port in service_def.ports.items():
            if host_port is None:
                allocated_port = get_free_port()
            elif is_port_free(host_port):
                allocated_port = host_port
            else:
                raise ComposeHooksError(
                    f"Port {host_port} is already in use, cannot start service {service_def.name}"
                )
            mappings[container_port] = allocated_port
        self.service_ports[service_def.name] = mappings
        return mappings

    def discovery_env(self) -> Dict[str, str]:
        """
        Environment variables for service discovery, e.g. DB_HOST=127.0.0.1, DB_PORT=5432.
        """
        env = {}
        for name, mappings in self.service_ports.items():
            prefix = name.upper().replace('-', '_')
            env[f"{prefix}_HOST"] = "127.0.0.1"
            if mappings:
                env[f"{prefix}_PORT"] = str(next(iter(mappings.values())))
        return env

    def create(self) -> List[ProcessContainer]:
        services = self.services
        order = self.resolver.resolve_order(services)
        containers_dir = os.path.join(self.state_dir, "containers")
        logs_dir = os.path.join(self.state_dir, "logs")

        if self.config.remove_orphans:
            self.remove_orphans(containers_dir)

        for name in order:
            if name in self._containers:
                continue
            root = os.path.join(containers_dir, name)
            # Leftovers from an earlier run are reused unless force_recreate
            if self.config.force_recreate and os.path.exists(root):
                shutil.rmtree(root)
            container = ProcessContainer(
                services[name],
                root_dir=root,
                ports=self.allocate_ports(services[name]),
                base_dir=self.base_dir,
                log_file=os.path.join(logs_dir, f"{name}.log"),
            )
            container.create()
            self._containers[name] = container
            logger.info("Created container %s (%s)", name, container.id)
        return self.containers()

    def remove_orphans(self, containers_dir: str) -> List[str]:
        """
        Deletes container directories left behind by services no longer in the compose file.

        :return: Names of the removed directories.
        """
        if not os.path.isdir(containers_dir):
            return []
        orphans = sorted(
            name for name in os.listdir(containers_dir)
            if name not in self.document.services
            and os.path.isdir(os.path.join(containers_dir, name))
        )
        for name in orphans:
            logger.info("Removing orphan container %s", name)
            shutil.rmtree(os.path.join(containers_dir, name))
        return orphans

    def start(self) -> None:
        env = self.discovery_env()
        for container in self.containers():
            container.start(extra_env=env)

    def stop(self) -> None:
        timeout = self.config.timeout_seconds or DEFAULT_STOP_TIMEOUT
        for container in reversed(self.containers()):
            container.stop(timeout=timeout)

    def remove(self) -> None:
        self.stop()
        if not self.config.keep_volumes:
            for container in self._containers.values():
                container.destroy()
        self._containers.clear()
        self.service_ports.clear()

    def containers(self) -> List[ProcessContainer]:
        return list(self._containers.values())

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
Base class for container handles that get their waits from the wait strategies.
"""
import uuid
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..MODELS.container_handle import Continuation, ExecutionResult
from ..MODELS.service_configuration import DEFAULT_HTTP_TIMEOUT_MS, MAX_TIMEOUT_MS
from ..WAITERS.http_waiter import wait_for_http
from ..WAITERS.port_waiter import wait_for_port
from ..WAITERS.process_waiter import wait_for_process


class ContainerService(ABC):
    """
    A container handle. Subclasses provide the two probes (host_endpoint and
    process_names) plus file transfer, execution and export; the waits are
    shared.
    """

    def __init__(self, name: str, container_id: Optional[str] = None):
        """
        :param name: Service name, unique within the group.
        :param container_id: Engine id; a random one is generated if omitted.
        """
        self.name = name
        self.id = container_id or uuid.uuid4().hex[:12]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, id={self.id!r})"

    # Probes

    @abstractmethod
    def host_endpoint(self, port: str) -> Optional[Tuple[str, int]]:
        """Host-visible (address, port) for a container port, None if unpublished."""

    @abstractmethod
    def process_names(self) -> List[str]:
        """Names and command lines of the processes running in the container."""

    # Side effects

    @abstractmethod
    def copy_to(self, container_path: str, host_path: str) -> None:
        """Copies host_path into the container at container_path."""

    @abstractmethod
    def copy_from(self, container_path: str, host_path: str) -> None:
        """Copies container_path out of the container to host_path."""

    @abstractmethod
    def execute(self, command: str) -> ExecutionResult:
        """Runs a command line inside the container and waits for it to exit."""

    @abstractmethod
    def export(self, host_path: str, explode: bool = False) -> None:
        """Exports the container filesystem as a tar archive, or a directory tree when explode is set."""

    # Waits

    def wait_for_port(self, port: str, timeout_ms: Optional[int] = MAX_TIMEOUT_MS) -> None:
        wait_for_port(self, port, timeout_ms)

    def wait_for_process(self, process: str, timeout_ms: Optional[int] = MAX_TIMEOUT_MS) -> None:
        wait_for_process(self, process, timeout_ms)

    def wait_for_http(
        self,
        url: str,
        timeout_ms: Optional[int] = DEFAULT_HTTP_TIMEOUT_MS,
        continuation: Optional[Continuation] = None,
        method: str = "GET",
        content_type: str = "application/json",
        body: Optional[str] = None,
    ) -> str:
        return wait_for_http(url, timeout_ms, continuation, method, content_type, body)

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
The shape of a live container as seen by lifecycle hooks.
"""
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Protocol


@dataclass
class ExecutionResult:
    """Outcome of a command executed inside a container."""

    success: bool
    exit_code: Optional[int] = None
    output: str = ""
    error: str = ""


@dataclass
class RequestResponse:
    """A single HTTP response observed while waiting on a URL."""

    status: int
    body: str = ""
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


# (response, attempt) -> milliseconds to wait before the next attempt; None or <= 0 stops
Continuation = Callable[[RequestResponse, int], Optional[int]]


class ContainerHandle(Protocol):
    """
    A running (or created) container inside a composite service.

    Hooks only ever talk to containers through this interface, so any engine
    can back it: docker, podman, or plain local processes.
    """

    name: str
    id: str

    def copy_to(self, container_path: str, host_path: str) -> None: ...

    def copy_from(self, container_path: str, host_path: str) -> None: ...

    def wait_for_port(self, port: str, timeout_ms: Optional[int]) -> None: ...

    def wait_for_http(
        self,
        url: str,
        timeout_ms: Optional[int] = 60_000,
        continuation: Optional[Continuation] = None,
        method: str = "GET",
        content_type: str = "application/json",
        body: Optional[str] = None,
    ) -> str: ...

    def wait_for_process(self, process: str, timeout_ms: Optional[int]) -> None: ...

    def execute(self, command: str) -> ExecutionResult: ...

    def export(self, host_path: str, explode: bool = False) -> None: ...

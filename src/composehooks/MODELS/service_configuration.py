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
Models for per-service hook declarations.
"""
from typing import Any, Callable, Optional, Tuple
from pydantic import BaseModel, ConfigDict

from .container_handle import Continuation

# Default for port and process waits: effectively no deadline.
# A wait declared with this value can block forever if the condition never holds.
MAX_TIMEOUT_MS = 2**63 - 1
# Explicit "never time out" sentinel, same semantics as MAX_TIMEOUT_MS.
NO_TIMEOUT = None
DEFAULT_HTTP_TIMEOUT_MS = 60_000
HTTP_METHODS = ("GET", "PUT", "POST", "DELETE")


def always(container: Any) -> bool:
    """Default export condition."""
    return True


class CopyMapping(BaseModel):
    """
    A file or directory transfer between the host and a container.
    """
    model_config = ConfigDict(frozen=True)

    host_path: str
    container_path: str


class PortWait(BaseModel):
    """
    Block until a container port accepts connections.
    """
    model_config = ConfigDict(frozen=True)

    port: str
    timeout_ms: Optional[int] = MAX_TIMEOUT_MS


class ProcessWait(BaseModel):
    """
    Block until a named process shows up in the container.
    """
    model_config = ConfigDict(frozen=True)

    process: str
    timeout_ms: Optional[int] = MAX_TIMEOUT_MS


class HttpWait(BaseModel):
    """
    Block until a URL answers in a way the continuation accepts.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    url: str
    timeout_ms: Optional[int] = DEFAULT_HTTP_TIMEOUT_MS
    continuation: Optional[Continuation] = None
    method: str = "GET"
    content_type: str = "application/json"
    body: Optional[str] = None


class ExportDirective(BaseModel):
    """
    Export the container filesystem to the host when the group is removed.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    host_path: str
    explode: bool = False
    condition: Callable[[Any], bool] = always


class ServiceConfiguration(BaseModel):
    """
    Every hook declared for one service.

    Values are immutable: a declaration produces a new configuration with
    the field replaced (single-valued fields) or extended (sequence fields).
    An empty sequence or None means no hook of that kind.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str

    # Starting
    copy_to_on_start: Tuple[CopyMapping, ...] = ()

    # Running
    wait_for_port: Optional[PortWait] = None
    wait_for_http: Tuple[HttpWait, ...] = ()
    wait_for_process: Optional[ProcessWait] = None
    execute_on_running: Tuple[str, ...] = ()

    # Removing
    copy_from_on_dispose: Tuple[CopyMapping, ...] = ()
    execute_on_disposing: Tuple[str, ...] = ()
    export_on_dispose: Optional[ExportDirective] = None

    def is_empty(self) -> bool:
        """True when nothing has been declared for this service."""
        return not (
            self.copy_to_on_start
            or self.wait_for_port
            or self.wait_for_http
            or self.wait_for_process
            or self.execute_on_running
            or self.copy_from_on_dispose
            or self.execute_on_disposing
            or self.export_on_dispose
        )

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
Lifecycle states of a composite service and the kinds of hooks bound to them.
"""
from enum import Enum


class LifecycleState(str, Enum):
    """
    States a composite service moves through.
    Only STARTING, RUNNING and REMOVING accept hooks.
    """
    CREATED = "created"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    REMOVING = "removing"
    REMOVED = "removed"


HOOKABLE_STATES = frozenset(
    {LifecycleState.STARTING, LifecycleState.RUNNING, LifecycleState.REMOVING}
)


class HookKind(str, Enum):
    """The action a synthesized hook performs on its container."""
    COPY_TO = "copy_to"
    WAIT_PORT = "wait_port"
    WAIT_HTTP = "wait_http"
    WAIT_PROCESS = "wait_process"
    EXECUTE = "execute"
    COPY_FROM = "copy_from"
    EXPORT = "export"

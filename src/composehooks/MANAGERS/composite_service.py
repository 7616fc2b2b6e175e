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
A group of containers driven through its lifecycle, firing hooks on the way.
"""
import logging
from typing import Callable, List, Optional, Tuple, Union

from ..errors import ComposeHooksError
from ..MODELS.compose_config import ComposeConfig
from ..MODELS.container_handle import ContainerHandle
from ..MODELS.lifecycle import HOOKABLE_STATES, LifecycleState
from .compose_engine import ComposeEngine
from .hook_dispatcher import HookEntry, LifecycleHookDispatcher

logger = logging.getLogger(__name__)


class CompositeService:
    """
    Owns the live containers of a compose group.

    The engine does the creating, starting and removing; this class decides
    when, and on entering STARTING, RUNNING and REMOVING fires the hooks
    registered for that state on the calling thread before moving on.
    """

    def __init__(
        self,
        config: ComposeConfig,
        engine: ComposeEngine,
        dispatcher: Optional[LifecycleHookDispatcher] = None,
    ):
        """
        Initializes the composite service.

        :param config: Group settings.
        :param engine: Creates and drives the containers.
        :param dispatcher: Hooks to fire; an empty dispatcher if omitted.
        """
        self.config = config
        self.engine = engine
        self.dispatcher = dispatcher or LifecycleHookDispatcher()
        self._state = LifecycleState.CREATED
        self._containers: List[ContainerHandle] = []
        self._created = False
        self._listeners: List[Callable[[LifecycleState], None]] = []

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def containers(self) -> Tuple[ContainerHandle, ...]:
        return tuple(self._containers)

    def resolve(self, name: str) -> Optional[ContainerHandle]:
        """
        First container whose name matches exactly, or None.
        """
        return next((c for c in self._containers if c.name == name), None)

    def add_hook(self, state: Union[LifecycleState, str], hook: HookEntry) -> "CompositeService":
        self.dispatcher.register(state, hook)
        return self

    def on_state_change(self, listener: Callable[[LifecycleState], None]) -> "CompositeService":
        """
        Registers a listener called with every state entered, before hooks fire.
        """
        self._listeners.append(listener)
        return self

    def _enter(self, state: LifecycleState) -> None:
        self._state = state
        logger.info("Compose group %s", state.value)
        for listener in self._listeners:
            listener(state)
        if state in HOOKABLE_STATES:
            self.dispatcher.fire(state, self)

    def start(self) -> "CompositeService":
        """
        Creates the containers if needed, then starts them.

        Starting hooks fire after the containers exist but before they run;
        running hooks fire once the engine reports them started. Starting a
        stopped group enters RUNNING again, so running hooks fire again.

        :raises ComposeHooksError: If the group has been removed.
        :raises WaitTimeout, ExecutionFault, RequestFailed: From a failing hook.
        """
        if self._state in (LifecycleState.REMOVING, LifecycleState.REMOVED):
            raise ComposeHooksError(f"Cannot start a group that is {self._state.value}")
        if self._state == LifecycleState.RUNNING:
            return self

        if not self._created:
            self._containers = list(self.engine.create())
            self._created = True

        self._enter(LifecycleState.STARTING)
        self.engine.start()
        self._containers = list(self.engine.containers())
        self._enter(LifecycleState.RUNNING)
        return self

    def stop(self) -> "CompositeService":
        """
        Stops the containers without removing them. No hooks fire.
        """
        if self._state in (LifecycleState.REMOVING, LifecycleState.REMOVED):
            raise ComposeHooksError(f"Cannot stop a group that is {self._state.value}")
        if self._state != LifecycleState.RUNNING:
            return self

        self._enter(LifecycleState.STOPPING)
        self.engine.stop()
        self._enter(LifecycleState.STOPPED)
        return self

    def remove(self) -> None:
        """
        Fires the removing hooks, then stops and removes the containers.

        If a removing hook fails the error propagates and the containers are
        left as they are. Calling remove() again skips the hooks and only tears
        down. With keep_running the containers are left alive after the hooks.
        """
        if self._state == LifecycleState.REMOVED:
            return
        if self._state != LifecycleState.REMOVING:
            self._enter(LifecycleState.REMOVING)

        if self._created and not self.config.keep_running:
            self.engine.stop()
            self.engine.remove()
        self._containers = []
        self._created = False
        self._enter(LifecycleState.REMOVED)

    dispose = remove

    def __enter__(self) -> "CompositeService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.remove()

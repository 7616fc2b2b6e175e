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
Lifecycle hooks: synthesis from service configurations and dispatch on state entry.

Hooks are plain data (state, service, kind, payload). The dispatcher resolves
the service name to a live container only when the hook fires, since the
containers usually do not exist yet when hooks are declared.

Firing is fail-fast: the first hook that raises aborts the remaining hooks of
that state and the error reaches whoever drove the transition. Hooks already
run are not undone. In particular an export declared for teardown does not run
when an earlier teardown command failed.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from ..errors import ConfigurationError, ExecutionFault
from ..MODELS.container_handle import ContainerHandle
from ..MODELS.lifecycle import HOOKABLE_STATES, HookKind, LifecycleState
from ..MODELS.service_configuration import ServiceConfiguration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Hook:
    """
    A deferred action on one service, bound to one lifecycle state.

    payload depends on kind:
        COPY_TO / COPY_FROM: tuple of CopyMapping
        WAIT_PORT: PortWait
        WAIT_HTTP: tuple of HttpWait
        WAIT_PROCESS: ProcessWait
        EXECUTE: tuple of command strings
        EXPORT: ExportDirective
    """
    state: LifecycleState
    service: str
    kind: HookKind
    payload: Any

    def describe(self) -> str:
        if self.kind in (HookKind.COPY_TO, HookKind.COPY_FROM, HookKind.WAIT_HTTP, HookKind.EXECUTE):
            return f"{self.kind.value} x{len(self.payload)}"
        return self.kind.value


# A callback receives the orchestrator that entered the state
Callback = Callable[[Any], None]
HookEntry = Union[Hook, Callback]


def synthesize_hooks(configurations: Iterable[ServiceConfiguration]) -> List[Hook]:
    """
    Translates service configurations into hooks, one per declared field.

    Services keep their declaration order; within a service the hooks follow
    copy-to (starting), port, http, process, execute (running), then
    copy-from, execute, export (removing).
    """
    hooks: List[Hook] = []
    for config in configurations:
        name = config.name

        def add(state: LifecycleState, kind: HookKind, payload: Any):
            hooks.append(Hook(state=state, service=name, kind=kind, payload=payload))

        if config.copy_to_on_start:
            add(LifecycleState.STARTING, HookKind.COPY_TO, config.copy_to_on_start)

        if config.wait_for_port:
            add(LifecycleState.RUNNING, HookKind.WAIT_PORT, config.wait_for_port)
        if config.wait_for_http:
            add(LifecycleState.RUNNING, HookKind.WAIT_HTTP, config.wait_for_http)
        if config.wait_for_process:
            add(LifecycleState.RUNNING, HookKind.WAIT_PROCESS, config.wait_for_process)
        if config.execute_on_running:
            add(LifecycleState.RUNNING, HookKind.EXECUTE, config.execute_on_running)

        if config.copy_from_on_dispose:
            add(LifecycleState.REMOVING, HookKind.COPY_FROM, config.copy_from_on_dispose)
        if config.execute_on_disposing:
            add(LifecycleState.REMOVING, HookKind.EXECUTE, config.execute_on_disposing)
        if config.export_on_dispose:
            add(LifecycleState.REMOVING, HookKind.EXPORT, config.export_on_dispose)
    return hooks


def _copy_to(hook: Hook, container: ContainerHandle) -> None:
    for copy in hook.payload:
        container.copy_to(copy.container_path, copy.host_path)


def _copy_from(hook: Hook, container: ContainerHandle) -> None:
    for copy in hook.payload:
        container.copy_from(copy.container_path, copy.host_path)


def _wait_port(hook: Hook, container: ContainerHandle) -> None:
    container.wait_for_port(hook.payload.port, hook.payload.timeout_ms)


def _wait_http(hook: Hook, container: ContainerHandle) -> None:
    for prm in hook.payload:
        container.wait_for_http(
            prm.url, prm.timeout_ms, prm.continuation, prm.method, prm.content_type, prm.body
        )


def _wait_process(hook: Hook, container: ContainerHandle) -> None:
    container.wait_for_process(hook.payload.process, hook.payload.timeout_ms)


def _execute(hook: Hook, container: ContainerHandle) -> None:
    for command in hook.payload:
        result = container.execute(command)
        if not result.success:
            raise ExecutionFault(hook.service, command, result.exit_code, result.error)


def _export(hook: Hook, container: ContainerHandle) -> None:
    directive = hook.payload
    if directive.condition(container):
        container.export(directive.host_path, directive.explode)
    else:
        logger.info("Export of %s skipped, condition not met", hook.service)


HANDLERS: Dict[HookKind, Callable[[Hook, ContainerHandle], None]] = {
    HookKind.COPY_TO: _copy_to,
    HookKind.COPY_FROM: _copy_from,
    HookKind.WAIT_PORT: _wait_port,
    HookKind.WAIT_HTTP: _wait_http,
    HookKind.WAIT_PROCESS: _wait_process,
    HookKind.EXECUTE: _execute,
    HookKind.EXPORT: _export,
}


def _hookable(state: Union[LifecycleState, str]) -> LifecycleState:
    try:
        state = LifecycleState(state)
    except ValueError:
        raise ConfigurationError(f"Unknown lifecycle state {state!r}") from None
    if state not in HOOKABLE_STATES:
        raise ConfigurationError(f"Hooks cannot be attached to the {state.value} state")
    return state


class LifecycleHookDispatcher:
    """
    Holds, per hookable state, an ordered list of hooks and runs them when
    told the group entered that state.
    """

    def __init__(self):
        self._hooks: Dict[LifecycleState, List[HookEntry]] = {
            state: [] for state in LifecycleState if state in HOOKABLE_STATES
        }

    def register(self, state: Union[LifecycleState, str], hook: HookEntry) -> None:
        """
        Appends a hook (or a plain callback taking the orchestrator) to a state.

        :raises ConfigurationError: If the state does not accept hooks.
        """
        state = _hookable(state)
        if not isinstance(hook, Hook) and not callable(hook):
            raise ConfigurationError(f"Hook must be a Hook or a callable, got {hook!r}")
        self._hooks[state].append(hook)

    def register_all(self, hooks: Iterable[Hook]) -> None:
        for hook in hooks:
            self.register(hook.state, hook)

    def hooks(self, state: Union[LifecycleState, str]) -> Tuple[HookEntry, ...]:
        return tuple(self._hooks[_hookable(state)])

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._hooks.values())

    def fire(self, state: Union[LifecycleState, str], orchestrator: Any) -> None:
        """
        Runs every hook registered for state, in registration order.

        :param state: The state the group just entered.
        :param orchestrator: Provides resolve(name); passed to plain callbacks.
        """
        state = LifecycleState(state)
        entries = list(self._hooks.get(state, ()))
        if entries:
            logger.debug("Firing %d %s hook(s)", len(entries), state.value)
        for entry in entries:
            if isinstance(entry, Hook):
                self.run_hook(entry, orchestrator)
            else:
                entry(orchestrator)

    def run_hook(self, hook: Hook, orchestrator: Any) -> None:
        """
        Resolves the hook's service and performs its action.
        A service that cannot be resolved is skipped silently.
        """
        container: Optional[ContainerHandle] = orchestrator.resolve(hook.service)
        if container is None:
            logger.debug("No container named %s, skipping %s hook", hook.service, hook.kind.value)
            return
        logger.info("%s hook on %s: %s", hook.state.value, hook.service, hook.describe())
        HANDLERS[hook.kind](hook, container)

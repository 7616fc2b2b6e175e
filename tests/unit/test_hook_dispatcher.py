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
Unit tests for hook synthesis and the lifecycle hook dispatcher.
"""
import pytest

from composehooks.errors import ConfigurationError, ExecutionFault, WaitTimeout
from composehooks.MANAGERS.hook_dispatcher import Hook, LifecycleHookDispatcher, synthesize_hooks
from composehooks.MODELS.lifecycle import HookKind, LifecycleState
from composehooks.MODELS.service_configuration import (
    CopyMapping,
    ExportDirective,
    HttpWait,
    PortWait,
    ProcessWait,
    ServiceConfiguration,
)

from fakes import FakeContainer, Resolver


def _execute(service, *commands, state=LifecycleState.RUNNING):
    return Hook(state=state, service=service, kind=HookKind.EXECUTE, payload=tuple(commands))


class TestSynthesis:
    """Tests for translating configurations into hooks."""

    def test_full_configuration_order(self):
        config = ServiceConfiguration(
            name="web",
            copy_to_on_start=(CopyMapping(host_path="/h", container_path="/c"),),
            wait_for_port=PortWait(port="80/tcp", timeout_ms=10),
            execute_on_running=("echo ready",),
            copy_from_on_dispose=(CopyMapping(host_path="/h", container_path="/c"),),
            execute_on_disposing=("echo bye",),
            export_on_dispose=ExportDirective(host_path="/export"),
        )
        hooks = synthesize_hooks([config])
        assert [(h.state, h.kind) for h in hooks] == [
            (LifecycleState.STARTING, HookKind.COPY_TO),
            (LifecycleState.RUNNING, HookKind.WAIT_PORT),
            (LifecycleState.RUNNING, HookKind.EXECUTE),
            (LifecycleState.REMOVING, HookKind.COPY_FROM),
            (LifecycleState.REMOVING, HookKind.EXECUTE),
            (LifecycleState.REMOVING, HookKind.EXPORT),
        ]
        assert all(h.service == "web" for h in hooks)

    def test_empty_configuration_yields_nothing(self):
        assert synthesize_hooks([ServiceConfiguration(name="web")]) == []

    def test_describe(self):
        assert _execute("web", "a", "b").describe() == "execute x2"


class TestDispatcher:
    """Tests for registration and firing."""

    def test_fires_in_registration_order(self):
        log = []
        web = FakeContainer("web", log)
        db = FakeContainer("db", log)
        dispatcher = LifecycleHookDispatcher()
        dispatcher.register(LifecycleState.RUNNING, _execute("db", "first"))
        dispatcher.register(LifecycleState.RUNNING, _execute("web", "second"))
        dispatcher.register(LifecycleState.RUNNING, lambda orchestrator: log.append(("callback",)))
        dispatcher.fire(LifecycleState.RUNNING, Resolver(web, db))
        assert log == [("execute", "db", "first"), ("execute", "web", "second"), ("callback",)]

    def test_only_the_entered_state_fires(self):
        log = []
        dispatcher = LifecycleHookDispatcher()
        dispatcher.register("removing", _execute("web", "bye", state=LifecycleState.REMOVING))
        dispatcher.fire(LifecycleState.RUNNING, Resolver(FakeContainer("web", log)))
        assert log == []

    def test_state_without_hooks_is_a_noop(self):
        LifecycleHookDispatcher().fire(LifecycleState.STARTING, Resolver())

    @pytest.mark.parametrize("state", ["created", "stopped", "removed", "bogus"])
    def test_unhookable_states_rejected(self, state):
        with pytest.raises(ConfigurationError):
            LifecycleHookDispatcher().register(state, _execute("web", "x"))

    def test_non_callable_rejected(self):
        with pytest.raises(ConfigurationError):
            LifecycleHookDispatcher().register(LifecycleState.RUNNING, "not a hook")

    def test_unresolved_service_skipped(self):
        log = []
        dispatcher = LifecycleHookDispatcher()
        dispatcher.register(LifecycleState.RUNNING, _execute("ghost", "x"))
        dispatcher.register(LifecycleState.RUNNING, _execute("web", "y"))
        dispatcher.fire(LifecycleState.RUNNING, Resolver(FakeContainer("web", log)))
        assert log == [("execute", "web", "y")]

    def test_every_kind_skipped_for_unresolved_service(self):
        log = []
        mapping = CopyMapping(host_path="/h", container_path="/c")
        config = ServiceConfiguration(
            name="ghost",
            copy_to_on_start=(mapping,),
            wait_for_port=PortWait(port="80/tcp", timeout_ms=5),
            wait_for_http=(HttpWait(url="http://127.0.0.1:1/", timeout_ms=5),),
            wait_for_process=ProcessWait(process="nginx", timeout_ms=5),
            execute_on_running=("echo ready",),
            copy_from_on_dispose=(mapping,),
            execute_on_disposing=("echo bye",),
            export_on_dispose=ExportDirective(host_path="/export"),
        )
        dispatcher = LifecycleHookDispatcher()
        dispatcher.register_all(synthesize_hooks([config]))
        assert {hook.kind for hook in synthesize_hooks([config])} == set(HookKind)

        orchestrator = Resolver(FakeContainer("web", log))
        for state in (LifecycleState.STARTING, LifecycleState.RUNNING, LifecycleState.REMOVING):
            dispatcher.fire(state, orchestrator)
        assert log == []

    def test_failing_command_stops_the_rest(self):
        log = []
        web = FakeContainer("web", log, failing={"bad"})
        dispatcher = LifecycleHookDispatcher()
        dispatcher.register(LifecycleState.RUNNING, _execute("web", "bad", "never"))
        dispatcher.register(LifecycleState.RUNNING, _execute("web", "also never"))
        with pytest.raises(ExecutionFault) as info:
            dispatcher.fire(LifecycleState.RUNNING, Resolver(web))
        assert info.value.command == "bad"
        assert info.value.service == "web"
        assert info.value.exit_code == 1
        assert "Failed to execute bad" in str(info.value)
        assert log == [("execute", "web", "bad")]

    def test_wait_failure_propagates(self):
        log = []
        web = FakeContainer("web", log, open_ports=set())
        dispatcher = LifecycleHookDispatcher()
        dispatcher.register_all(synthesize_hooks([
            ServiceConfiguration(
                name="web",
                wait_for_port=PortWait(port="80/tcp", timeout_ms=5),
                execute_on_running=("echo ready",),
            )
        ]))
        with pytest.raises(WaitTimeout):
            dispatcher.fire(LifecycleState.RUNNING, Resolver(web))
        assert ("execute", "web", "echo ready") not in log

    def test_export_condition(self):
        log = []
        web = FakeContainer("web", log)
        dispatcher = LifecycleHookDispatcher()
        dispatcher.register(LifecycleState.REMOVING, Hook(
            LifecycleState.REMOVING, "web", HookKind.EXPORT,
            ExportDirective(host_path="/skip", condition=lambda c: False),
        ))
        dispatcher.register(LifecycleState.REMOVING, Hook(
            LifecycleState.REMOVING, "web", HookKind.EXPORT,
            ExportDirective(host_path="/tree", explode=True, condition=lambda c: c.name == "web"),
        ))
        dispatcher.fire(LifecycleState.REMOVING, Resolver(web))
        assert log == [("export", "web", "/tree", True)]

    def test_copy_hooks_pass_both_paths(self):
        log = []
        mapping = CopyMapping(host_path="/host/seed", container_path="/data/seed")
        dispatcher = LifecycleHookDispatcher()
        dispatcher.register_all([
            Hook(LifecycleState.STARTING, "web", HookKind.COPY_TO, (mapping,)),
            Hook(LifecycleState.STARTING, "web", HookKind.COPY_FROM, (mapping,)),
        ])
        dispatcher.fire(LifecycleState.STARTING, Resolver(FakeContainer("web", log)))
        assert log == [
            ("copy_to", "web", "/host/seed", "/data/seed"),
            ("copy_from", "web", "/data/seed", "/host/seed"),
        ]

    def test_hooks_snapshot_and_len(self):
        dispatcher = LifecycleHookDispatcher()
        dispatcher.register(LifecycleState.RUNNING, _execute("web", "x"))
        snapshot = dispatcher.hooks(LifecycleState.RUNNING)
        dispatcher.register(LifecycleState.RUNNING, _execute("web", "y"))
        assert len(snapshot) == 1
        assert len(dispatcher) == 2

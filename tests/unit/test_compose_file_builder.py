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
Unit tests for ComposeFileBuilder.
"""
import pytest

from composehooks.BUILDERS.compose_file_builder import ComposeFileBuilder
from composehooks.errors import ConfigurationError
from composehooks.MODELS.compose_config import ImageRemovalOption
from composehooks.MODELS.lifecycle import HookKind, LifecycleState
from composehooks.MODELS.service_configuration import MAX_TIMEOUT_MS

from fakes import FakeEngine


def test_group_options():
    builder = (
        ComposeFileBuilder("docker-compose.yml")
        .force_recreate()
        .remove_orphans()
        .timeout(5)
        .keep_volumes()
        .keep_running()
        .remove_non_tagged_images()
        .service_name("grp")
        .services("web", "db")
    )
    config = builder.config
    assert config.compose_file_path == "docker-compose.yml"
    assert config.force_recreate
    assert config.remove_orphans
    assert config.timeout_seconds == 5
    assert config.keep_volumes
    assert config.keep_running
    assert config.image_removal == ImageRemovalOption.LOCAL
    assert config.alternative_service_name == "grp"
    assert config.services == ["web", "db"]
    assert builder.remove_all_images().config.image_removal == ImageRemovalOption.ALL


def test_defaults_for_waits():
    builder = ComposeFileBuilder("c.yml").wait_for_port("web", "80/tcp").wait_for_http("web", "http://x/")
    config = builder.registry.get("web")
    assert config.wait_for_port.timeout_ms == MAX_TIMEOUT_MS
    assert config.wait_for_http[0].timeout_ms == 60_000
    assert config.wait_for_http[0].method == "GET"


def test_http_method_normalized():
    builder = ComposeFileBuilder("c.yml").wait_for_http("web", "http://x/", method="post")
    assert builder.registry.get("web").wait_for_http[0].method == "POST"


def test_unsupported_http_method_rejected_eagerly():
    with pytest.raises(ConfigurationError):
        ComposeFileBuilder("c.yml").wait_for_http("web", "http://x/", method="PATCH")


@pytest.mark.parametrize("port", ["53/udp", "eighty", "0/tcp", "80/sctp"])
def test_bad_port_wait_rejected(port):
    with pytest.raises(ConfigurationError):
        ComposeFileBuilder("c.yml").wait_for_port("web", port)


def test_negative_timeout_rejected():
    with pytest.raises(ConfigurationError):
        ComposeFileBuilder("c.yml").wait_for_process("web", "nginx", -1)


def test_empty_process_rejected():
    with pytest.raises(ConfigurationError):
        ComposeFileBuilder("c.yml").wait_for_process("web", "")


def test_host_paths_expanded(monkeypatch):
    monkeypatch.setenv("SEED_DIR", "/seeds")
    builder = ComposeFileBuilder("c.yml").copy_on_start("web", "$SEED_DIR/a.txt", "/data/a.txt")
    assert builder.registry.get("web").copy_to_on_start[0].host_path == "/seeds/a.txt"


def test_export_variants_overwrite():
    builder = (
        ComposeFileBuilder("c.yml")
        .export_on_dispose("web", "/tmp/a.tar")
        .export_exploded_on_dispose("web", "/tmp/tree")
    )
    directive = builder.registry.get("web").export_on_dispose
    assert directive.host_path == "/tmp/tree"
    assert directive.explode
    assert directive.condition(object())


def test_build_without_compose_file():
    with pytest.raises(ConfigurationError, match="Cannot create service without a docker-compose file"):
        ComposeFileBuilder().execute_on_running("web", "x").build(FakeEngine())


def test_build_synthesizes_hooks():
    service = (
        ComposeFileBuilder("c.yml")
        .execute_on_running("web", "echo ready")
        .copy_on_start("web", "/seed", "/data/seed")
        .wait_for_port("web", "80/tcp", 1000)
        .copy_on_dispose("web", "/data/out", "/out")
        .build(FakeEngine())
    )
    dispatcher = service.dispatcher
    assert [h.kind for h in dispatcher.hooks(LifecycleState.STARTING)] == [HookKind.COPY_TO]
    assert [h.kind for h in dispatcher.hooks(LifecycleState.RUNNING)] == [
        HookKind.WAIT_PORT,
        HookKind.EXECUTE,
    ]
    assert [h.kind for h in dispatcher.hooks(LifecycleState.REMOVING)] == [HookKind.COPY_FROM]
    assert service.state == LifecycleState.CREATED


def test_undeclared_service_gets_no_hooks():
    service = ComposeFileBuilder("c.yml").build(FakeEngine(names=("web", "db")))
    assert len(service.dispatcher) == 0


def test_list_fields_keep_every_declaration():
    builder = (
        ComposeFileBuilder("c.yml")
        .copy_on_start("web", "/a", "/data/a")
        .copy_on_start("web", "/b", "/data/b")
        .copy_on_dispose("web", "/data/a", "/out/a")
        .copy_on_dispose("web", "/data/b", "/out/b")
        .wait_for_http("web", "http://x/one")
        .wait_for_http("web", "http://x/two")
    )
    config = builder.registry.get("web")
    assert [c.host_path for c in config.copy_to_on_start] == ["/a", "/b"]
    assert [c.host_path for c in config.copy_from_on_dispose] == ["/out/a", "/out/b"]
    assert [w.url for w in config.wait_for_http] == ["http://x/one", "http://x/two"]


def test_single_fields_keep_the_last_declaration():
    builder = (
        ComposeFileBuilder("c.yml")
        .wait_for_process("web", "nginx", 100)
        .wait_for_process("web", "python", 200)
        .wait_for_port("web", "80/tcp")
        .wait_for_port("web", "443/tcp", 50)
    )
    config = builder.registry.get("web")
    assert config.wait_for_process.process == "python"
    assert config.wait_for_process.timeout_ms == 200
    assert config.wait_for_port.port == "443/tcp"
    assert config.wait_for_port.timeout_ms == 50

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
Unit tests for ProcessContainer error paths and LocalComposeEngine group options.
"""
import os
import sys

import pytest

from composehooks.errors import ComposeHooksError, ConfigurationError
from composehooks.MANAGERS.process_container import ProcessContainer
from composehooks.MODELS.compose_config import ComposeConfig
from composehooks.MODELS.service_definition import ComposeDocument, ServiceDefinition
from composehooks.RUNNERS.local_engine import STATE_DIR, LocalComposeEngine


def _container(tmp_path, cmd):
    container = ProcessContainer(
        ServiceDefinition(name="web", cmd=cmd),
        root_dir=str(tmp_path / "root"),
        log_file=str(tmp_path / "logs" / "web.log"),
    )
    container.create()
    return container


def _document(*names):
    return ComposeDocument(services={
        name: ServiceDefinition(name=name, cmd=[sys.executable, "-c", "pass"]) for name in names
    })


class TestProcessContainer:
    """Tests for launch and execution failures."""

    def test_missing_executable_closes_log(self, tmp_path):
        container = _container(tmp_path, [str(tmp_path / "no-such-binary")])
        with pytest.raises(ComposeHooksError, match="Cannot start service web"):
            container.start()
        assert container._log_handle is None
        assert container.process is None
        assert container.status() == "created"

    def test_execute_missing_command(self, tmp_path):
        result = _container(tmp_path, []).execute(str(tmp_path / "no-such-binary"))
        assert not result.success
        assert result.exit_code == 127

    def test_execute_not_executable(self, tmp_path):
        script = tmp_path / "script.sh"
        script.write_text("echo hi\n")
        os.chmod(script, 0o644)
        result = _container(tmp_path, []).execute(str(script))
        assert not result.success
        assert result.exit_code == 126
        assert result.error

    def test_path_outside_root_rejected(self, tmp_path):
        with pytest.raises(ComposeHooksError):
            _container(tmp_path, []).resolve_path("../escape")


class TestLocalEngineOptions:
    """Tests for the group options the local engine honors."""

    def test_remove_orphans(self, tmp_path):
        containers = tmp_path / STATE_DIR / "containers"
        (containers / "old").mkdir(parents=True)
        (containers / "web").mkdir()
        (containers / "web" / "kept.txt").write_text("x")

        config = ComposeConfig(compose_file_path="c.yml", remove_orphans=True)
        engine = LocalComposeEngine(config, _document("web"), base_dir=str(tmp_path))
        engine.create()

        assert not (containers / "old").exists()
        assert (containers / "web" / "kept.txt").exists()

    def test_orphans_kept_by_default(self, tmp_path):
        containers = tmp_path / STATE_DIR / "containers"
        (containers / "old").mkdir(parents=True)
        engine = LocalComposeEngine(ComposeConfig(compose_file_path="c.yml"), _document("web"), base_dir=str(tmp_path))
        engine.create()
        assert (containers / "old").exists()

    def test_unselected_service_is_not_an_orphan(self, tmp_path):
        containers = tmp_path / STATE_DIR / "containers"
        (containers / "db").mkdir(parents=True)
        config = ComposeConfig(compose_file_path="c.yml", remove_orphans=True, services=["web"])
        LocalComposeEngine(config, _document("web", "db"), base_dir=str(tmp_path)).create()
        assert (containers / "db").exists()

    def test_force_recreate_wipes_leftovers(self, tmp_path):
        root = tmp_path / STATE_DIR / "containers" / "web"
        root.mkdir(parents=True)
        (root / "stale.txt").write_text("x")
        config = ComposeConfig(compose_file_path="c.yml", force_recreate=True)
        LocalComposeEngine(config, _document("web"), base_dir=str(tmp_path)).create()
        assert root.exists()
        assert not (root / "stale.txt").exists()

    def test_no_recreate_reuses_leftovers(self, tmp_path):
        root = tmp_path / STATE_DIR / "containers" / "web"
        root.mkdir(parents=True)
        (root / "stale.txt").write_text("x")
        config = ComposeConfig(compose_file_path="c.yml", no_recreate=True)
        LocalComposeEngine(config, _document("web"), base_dir=str(tmp_path)).create()
        assert (root / "stale.txt").exists()

    def test_recreate_options_conflict(self, tmp_path):
        config = ComposeConfig(compose_file_path="c.yml", force_recreate=True, no_recreate=True)
        with pytest.raises(ConfigurationError):
            LocalComposeEngine(config, _document("web"), base_dir=str(tmp_path))

    def test_group_name_selects_state_dir(self, tmp_path):
        config = ComposeConfig(compose_file_path="c.yml", alternative_service_name="grp")
        engine = LocalComposeEngine(config, _document("web"), base_dir=str(tmp_path))
        engine.create()
        assert engine.state_dir == str(tmp_path / STATE_DIR / "grp")
        assert (tmp_path / STATE_DIR / "grp" / "containers" / "web").is_dir()

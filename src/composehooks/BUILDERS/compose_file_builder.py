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
Fluent builder for a compose group and the hooks of its services.
"""
import os
from typing import Any, Callable, Optional

from ..errors import ConfigurationError
from ..MANAGERS.compose_engine import ComposeEngine
from ..MANAGERS.composite_service import CompositeService
from ..MANAGERS.hook_dispatcher import LifecycleHookDispatcher, synthesize_hooks
from ..MODELS.compose_config import ComposeConfig, ImageRemovalOption
from ..MODELS.container_handle import Continuation
from ..MODELS.service_configuration import (
    DEFAULT_HTTP_TIMEOUT_MS,
    MAX_TIMEOUT_MS,
    CopyMapping,
    ExportDirective,
    HttpWait,
    PortWait,
    ProcessWait,
    always,
)
from ..RUNNERS.local_engine import LocalComposeEngine
from ..UTILS.port_finder import parse_port_spec
from ..WAITERS.http_waiter import normalize_http_method
from .configuration_registry import ConfigurationRegistry


def expand_host_path(path: str) -> str:
    """Expands ~ and environment variables in a host path."""
    return os.path.expandvars(os.path.expanduser(str(path)))


def _check_timeout(timeout_ms: Optional[int]) -> Optional[int]:
    if timeout_ms is not None and timeout_ms < 0:
        raise ConfigurationError(f"Timeout must not be negative, got {timeout_ms}")
    return timeout_ms


class ComposeFileBuilder:
    """
    Collects group settings and per-service hook declarations, then builds a
    CompositeService with the hooks attached.

    Every method returns the builder. Invalid declarations raise
    ConfigurationError right away rather than when the hook would fire.

    Example::

        svc = (
            ComposeFileBuilder("docker-compose.yml")
            .copy_on_start("web", "./seed.txt", "/data/seed.txt")
            .wait_for_port("web", "80/tcp", 30_000)
            .execute_on_running("web", "echo ready")
            .build()
        )
        with svc.start():
            ...
    """

    def __init__(self, compose_file: Optional[str] = None):
        self._config = ComposeConfig(compose_file_path=compose_file)
        self._registry = ConfigurationRegistry()

    @property
    def config(self) -> ComposeConfig:
        return self._config

    @property
    def registry(self) -> ConfigurationRegistry:
        return self._registry

    def _with(self, **changes: Any) -> "ComposeFileBuilder":
        self._config = self._config.model_copy(update=changes)
        return self

    # Group settings

    def from_file(self, compose_file: str) -> "ComposeFileBuilder":
        return self._with(compose_file_path=compose_file)

    def force_recreate(self) -> "ComposeFileBuilder":
        return self._with(force_recreate=True)

    def no_recreate(self) -> "ComposeFileBuilder":
        return self._with(no_recreate=True)

    def no_build(self) -> "ComposeFileBuilder":
        return self._with(no_build=True)

    def force_build(self) -> "ComposeFileBuilder":
        return self._with(force_build=True)

    def timeout(self, seconds: float) -> "ComposeFileBuilder":
        return self._with(timeout_seconds=seconds)

    def remove_orphans(self) -> "ComposeFileBuilder":
        return self._with(remove_orphans=True)

    def service_name(self, name: str) -> "ComposeFileBuilder":
        return self._with(alternative_service_name=name)

    def use_color(self) -> "ComposeFileBuilder":
        return self._with(use_color=True)

    def keep_volumes(self) -> "ComposeFileBuilder":
        return self._with(keep_volumes=True)

    def remove_all_images(self) -> "ComposeFileBuilder":
        return self._with(image_removal=ImageRemovalOption.ALL)

    def remove_non_tagged_images(self) -> "ComposeFileBuilder":
        return self._with(image_removal=ImageRemovalOption.LOCAL)

    def keep_running(self) -> "ComposeFileBuilder":
        """Leave the containers running when the group is disposed."""
        return self._with(keep_running=True)

    def services(self, *names: str) -> "ComposeFileBuilder":
        """Only bring up the named services."""
        return self._with(services=list(names))

    # Starting

    def copy_on_start(self, service: str, host_path: str, container_path: str) -> "ComposeFileBuilder":
        """Copies host_path into the container just before it starts. Accumulates."""
        mapping = CopyMapping(host_path=expand_host_path(host_path), container_path=container_path)
        self._registry.append(service, "copy_to_on_start", mapping)
        return self

    # Running

    def wait_for_port(
        self, service: str, port: str, timeout_ms: Optional[int] = MAX_TIMEOUT_MS
    ) -> "ComposeFileBuilder":
        """
        Waits for a port such as "5432/tcp" once the service runs.
        Only the last declaration per service is kept. The default timeout
        never expires, so a port that never opens blocks forever.
        """
        _, proto = parse_port_spec(port)
        if proto != "tcp":
            raise ConfigurationError(f"Only tcp ports can be waited on, got {port!r}")
        wait = PortWait(port=port, timeout_ms=_check_timeout(timeout_ms))
        self._registry.set(service, "wait_for_port", wait)
        return self

    def wait_for_process(
        self, service: str, process: str, timeout_ms: Optional[int] = MAX_TIMEOUT_MS
    ) -> "ComposeFileBuilder":
        """
        Waits for a process to run in the service. Only the last declaration
        per service is kept; the default timeout never expires.
        """
        if not process:
            raise ConfigurationError("Process name must not be empty")
        wait = ProcessWait(process=process, timeout_ms=_check_timeout(timeout_ms))
        self._registry.set(service, "wait_for_process", wait)
        return self

    def wait_for_http(
        self,
        service: str,
        url: str,
        timeout_ms: Optional[int] = DEFAULT_HTTP_TIMEOUT_MS,
        continuation: Optional[Continuation] = None,
        method: str = "GET",
        content_type: str = "application/json",
        body: Optional[str] = None,
    ) -> "ComposeFileBuilder":
        """
        Waits for a URL to answer once the service runs. Accumulates.

        :param continuation: (response, attempt) -> milliseconds to wait before
            the next attempt; zero or less ends the wait.
        :raises ConfigurationError: If method is not GET, PUT, POST or DELETE.
        """
        wait = HttpWait(
            url=url,
            timeout_ms=_check_timeout(timeout_ms),
            continuation=continuation,
            method=normalize_http_method(method),
            content_type=content_type,
            body=body,
        )
        self._registry.append(service, "wait_for_http", wait)
        return self

    def execute_on_running(self, service: str, *commands: str) -> "ComposeFileBuilder":
        """
        Runs each command line in the service once it runs. Accumulates.
        A command that exits non-zero aborts the start.
        """
        self._registry.append(service, "execute_on_running", *commands)
        return self

    # Removing

    def execute_on_disposing(self, service: str, *commands: str) -> "ComposeFileBuilder":
        self._registry.append(service, "execute_on_disposing", *commands)
        return self

    def copy_on_dispose(self, service: str, container_path: str, host_path: str) -> "ComposeFileBuilder":
        mapping = CopyMapping(host_path=expand_host_path(host_path), container_path=container_path)
        self._registry.append(service, "copy_from_on_dispose", mapping)
        return self

    def export_on_dispose(
        self, service: str, host_path: str, condition: Optional[Callable[[Any], bool]] = None
    ) -> "ComposeFileBuilder":
        """Exports the container as a tar archive when the group is removed."""
        return self._export(service, host_path, False, condition)

    def export_exploded_on_dispose(
        self, service: str, host_path: str, condition: Optional[Callable[[Any], bool]] = None
    ) -> "ComposeFileBuilder":
        """Exports the container as a directory tree when the group is removed."""
        return self._export(service, host_path, True, condition)

    def _export(self, service, host_path, explode, condition) -> "ComposeFileBuilder":
        directive = ExportDirective(
            host_path=expand_host_path(host_path),
            explode=explode,
            condition=condition or always,
        )
        self._registry.set(service, "export_on_dispose", directive)
        return self

    # Build

    def build(self, engine: Optional[ComposeEngine] = None) -> CompositeService:
        """
        Synthesizes the hooks and returns the composite service, not yet started.

        :param engine: Engine driving the containers; a LocalComposeEngine
            for the compose file when omitted.
        :raises ConfigurationError: If no compose file was given.
        """
        if not self._config.compose_file_path:
            raise ConfigurationError("Cannot create service without a docker-compose file")

        if engine is None:
            engine = LocalComposeEngine(self._config)

        dispatcher = LifecycleHookDispatcher()
        dispatcher.register_all(synthesize_hooks(self._registry))
        return CompositeService(self._config, engine, dispatcher)

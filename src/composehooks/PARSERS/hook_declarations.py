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
Applies the `x-hooks` blocks of a compose file to a ComposeFileBuilder.

    services:
      web:
        x-hooks:
          copy_on_start: [{host: ./seed.txt, container: /data/seed.txt}]
          wait_for_port: {port: 8080/tcp, timeout_ms: 5000}
          wait_for_http: [{url: "http://127.0.0.1:8080/", timeout_ms: 5000}]
          wait_for_process: {process: python, timeout_ms: 5000}
          execute_on_running: ["echo ready"]
          execute_on_disposing: ["echo bye"]
          copy_on_dispose: [{container: /data/out.txt, host: ./out.txt}]
          export_on_dispose: {host: ./export, explode: true}

Relative host paths are taken relative to the compose file.
"""
import os
from typing import Any, Dict, List, Optional

from ..BUILDERS.compose_file_builder import ComposeFileBuilder
from ..errors import ConfigurationError
from ..MODELS.service_configuration import DEFAULT_HTTP_TIMEOUT_MS, MAX_TIMEOUT_MS
from ..MODELS.service_definition import ComposeDocument
from .compose_parser import ComposeParser


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _require(entry: Any, key: str, hook: str, service: str) -> Any:
    if not isinstance(entry, dict) or key not in entry:
        raise ConfigurationError(f"{hook} of service {service} needs a '{key}' key")
    return entry[key]


class HookDeclarations:
    """
    Translates raw `x-hooks` mappings into builder calls.
    """

    def __init__(self, builder: ComposeFileBuilder, base_dir: str = "."):
        """
        :param builder: Builder receiving the declarations.
        :param base_dir: Directory relative host paths are resolved against.
        """
        self.builder = builder
        self.base_dir = base_dir
        self._handlers = {
            "copy_on_start": self._copy_on_start,
            "copy_on_dispose": self._copy_on_dispose,
            "wait_for_port": self._wait_for_port,
            "wait_for_http": self._wait_for_http,
            "wait_for_process": self._wait_for_process,
            "execute_on_running": self._execute_on_running,
            "execute_on_disposing": self._execute_on_disposing,
            "export_on_dispose": self._export_on_dispose,
        }

    def host_path(self, path: str) -> str:
        path = os.path.expandvars(os.path.expanduser(str(path)))
        if os.path.isabs(path):
            return path
        return os.path.abspath(os.path.join(self.base_dir, path))

    def apply(self, service: str, hooks: Dict[str, Any]) -> None:
        """
        :raises ConfigurationError: On unknown hook names or malformed entries.
        """
        for key, value in hooks.items():
            handler = self._handlers.get(key)
            if handler is None:
                raise ConfigurationError(f"Unknown hook {key!r} on service {service}")
            handler(service, value)

    def apply_document(self, document: ComposeDocument) -> None:
        for name, service_def in document.services.items():
            self.apply(name, service_def.hooks)

    def _copy_on_start(self, service: str, value: Any) -> None:
        for entry in _as_list(value):
            host = _require(entry, "host", "copy_on_start", service)
            container = _require(entry, "container", "copy_on_start", service)
            self.builder.copy_on_start(service, self.host_path(host), container)

    def _copy_on_dispose(self, service: str, value: Any) -> None:
        for entry in _as_list(value):
            container = _require(entry, "container", "copy_on_dispose", service)
            host = _require(entry, "host", "copy_on_dispose", service)
            self.builder.copy_on_dispose(service, container, self.host_path(host))

    def _wait_for_port(self, service: str, value: Any) -> None:
        if not isinstance(value, dict):
            value = {"port": value}
        port = _require(value, "port", "wait_for_port", service)
        self.builder.wait_for_port(service, str(port), value.get("timeout_ms", MAX_TIMEOUT_MS))

    def _wait_for_process(self, service: str, value: Any) -> None:
        if not isinstance(value, dict):
            value = {"process": value}
        process = _require(value, "process", "wait_for_process", service)
        self.builder.wait_for_process(service, process, value.get("timeout_ms", MAX_TIMEOUT_MS))

    def _wait_for_http(self, service: str, value: Any) -> None:
        for entry in _as_list(value):
            if not isinstance(entry, dict):
                entry = {"url": entry}
            self.builder.wait_for_http(
                service,
                _require(entry, "url", "wait_for_http", service),
                timeout_ms=entry.get("timeout_ms", DEFAULT_HTTP_TIMEOUT_MS),
                method=entry.get("method", "GET"),
                content_type=entry.get("content_type", "application/json"),
                body=entry.get("body"),
            )

    def _execute_on_running(self, service: str, value: Any) -> None:
        self.builder.execute_on_running(service, *[str(c) for c in _as_list(value)])

    def _execute_on_disposing(self, service: str, value: Any) -> None:
        self.builder.execute_on_disposing(service, *[str(c) for c in _as_list(value)])

    def _export_on_dispose(self, service: str, value: Any) -> None:
        if not isinstance(value, dict):
            value = {"host": value}
        host = self.host_path(_require(value, "host", "export_on_dispose", service))
        if value.get("explode", False):
            self.builder.export_exploded_on_dispose(service, host)
        else:
            self.builder.export_on_dispose(service, host)


def builder_from_compose_file(
    compose_file: str, document: Optional[ComposeDocument] = None
) -> ComposeFileBuilder:
    """
    Returns a builder for compose_file with every `x-hooks` declaration applied.
    """
    if document is None:
        document = ComposeParser().parse(compose_file)
    builder = ComposeFileBuilder(compose_file)
    HookDeclarations(builder, os.path.dirname(os.path.abspath(compose_file))).apply_document(document)
    return builder

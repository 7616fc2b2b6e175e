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
Parsers for Docker Compose YAML files, including per-service `x-hooks` blocks.
"""
import shlex
import yaml
from typing import Any, Dict, List, Optional
from ..errors import ConfigurationError
from ..MODELS.service_definition import ComposeDocument, ServiceDefinition

HOOKS_KEY = "x-hooks"


class ComposeParser:
    """
    Parser for docker-compose.yml files.
    """

    def parse(self, compose_path: str) -> ComposeDocument:
        """
        Parses a compose file from a path.

        :param compose_path: Path to the compose file.
        :return: Parsed document.
        """
        with open(compose_path, 'r') as f:
            content = f.read()
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> ComposeDocument:
        """
        Parses a compose file from a string.

        :param content: YAML content of the compose file.
        :return: Parsed document.
        :raises ConfigurationError: If the YAML is not a compose mapping.
        """
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid compose file: {e}") from e
        if not data:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError("Compose file must contain a mapping")

        services = {}
        for name, spec in (data.get('services') or {}).items():
            services[name] = self._parse_service(name, spec or {})

        return ComposeDocument(
            services=services,
            volumes=list(data.get('volumes', {}).keys()) if data.get('volumes') else [],
        )

    def _parse_service(self, name: str, spec: Dict[str, Any]) -> ServiceDefinition:
        """
        Parses a single service definition from a compose file.

        :param name: The name of the service.
        :param spec: The service specification dictionary.
        :return: A ServiceDefinition instance.
        """
        # Ports
        ports: Dict[int, Optional[int]] = {}
        for p in spec.get('ports', []):
            if isinstance(p, dict):
                ports[int(p['target'])] = int(p['published']) if p.get('published') else None
                continue
            parts = str(p).split('/')[0].split(':')
            if len(parts) == 1:
                ports[int(parts[0])] = None
            else:
                # [ip:]host:container
                ports[int(parts[-1])] = int(parts[-2]) if parts[-2] else None

        # Environment
        environment: Dict[str, str] = {}
        env_spec = spec.get('environment', [])
        if isinstance(env_spec, list):
            for e in env_spec:
                if '=' in e:
                    k, v = e.split('=', 1)
                    environment[k] = v
        elif isinstance(env_spec, dict):
            environment = {k: '' if v is None else str(v) for k, v in env_spec.items()}

        depends_on = spec.get('depends_on', [])
        if isinstance(depends_on, dict):
            depends_on = list(depends_on.keys())

        hooks = spec.get(HOOKS_KEY) or {}
        if not isinstance(hooks, dict):
            raise ConfigurationError(f"{HOOKS_KEY} of service {name} must be a mapping")

        return ServiceDefinition(
            name=name,
            image_name=spec.get('image', ''),
            cmd=self._to_command(spec.get('command', [])),
            entrypoint=self._to_command(spec.get('entrypoint', [])),
            working_dir=spec.get('working_dir'),
            environment=environment,
            environment_files=self._to_list(spec.get('env_file', [])),
            ports=ports,
            depends_on=list(depends_on),
            hooks=hooks,
        )

    def _to_list(self, val: Any) -> List[str]:
        """
        Helper to ensure a value is a list of strings.

        :param val: The value to convert.
        :return: A list of strings.
        """
        if val is None:
            return []
        if isinstance(val, str):
            return [val]
        return [str(v) for v in val]

    def _to_command(self, val: Any) -> List[str]:
        """
        Like _to_list, but a string command is split shell-style, the way compose does.
        """
        if isinstance(val, str):
            return shlex.split(val)
        return self._to_list(val)

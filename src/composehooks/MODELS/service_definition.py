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
Models for services read from a compose file and run by the local engine.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel


class ServiceDefinition(BaseModel):
    """
    The parts of a compose service the local engine needs to run it as a process.
    """
    name: str
    image_name: str = ""

    # Execution
    cmd: List[str] = []
    entrypoint: List[str] = []
    working_dir: Optional[str] = None

    # Environment
    environment: Dict[str, str] = {}
    environment_files: List[str] = []

    # Networking
    ports: Dict[int, Optional[int]] = {}  # {container: host}

    # Lifecycle
    depends_on: List[str] = []

    # Raw `x-hooks` block, applied to a builder by PARSERS.hook_declarations
    hooks: Dict[str, Any] = {}

    def full_command(self) -> List[str]:
        """
        Combines entrypoint and cmd the way docker does: the entrypoint is the
        executable when present and cmd becomes its arguments.
        """
        if self.entrypoint:
            return self.entrypoint + self.cmd
        return list(self.cmd)


class ComposeDocument(BaseModel):
    """
    A parsed compose file.
    """
    services: Dict[str, ServiceDefinition]
    volumes: List[str] = []

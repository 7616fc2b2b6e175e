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
The collaborator that actually creates, starts, stops and removes containers.
"""
from abc import ABC, abstractmethod
from typing import List

from ..MODELS.container_handle import ContainerHandle


class ComposeEngine(ABC):
    """
    Drives the containers of a group. A composite service calls these in
    lifecycle order and fires hooks between the calls; engines never fire
    hooks themselves.
    """

    @abstractmethod
    def create(self) -> List[ContainerHandle]:
        """Creates the containers without starting them and returns their handles."""

    @abstractmethod
    def start(self) -> None:
        """Starts every created container."""

    @abstractmethod
    def stop(self) -> None:
        """Stops every running container."""

    @abstractmethod
    def remove(self) -> None:
        """Removes the containers and anything the engine created for them."""

    @abstractmethod
    def containers(self) -> List[ContainerHandle]:
        """Current handles, in start order."""

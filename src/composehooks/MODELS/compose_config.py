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
Models for group-level compose settings.
"""
from typing import List, Optional
from enum import Enum
from pydantic import BaseModel


class ImageRemovalOption(str, Enum):
    """
    Which images to remove when the group is torn down.
    """
    NONE = "none"
    LOCAL = "local"  # only images without a custom tag
    ALL = "all"


class ComposeConfig(BaseModel):
    """
    Settings for a whole compose group, independent of any single service.
    Engines read these when creating and removing containers.

    LocalComposeEngine honors force_recreate, no_recreate, remove_orphans,
    alternative_service_name (the group directory under .composehooks),
    services, timeout_seconds, keep_volumes and keep_running. It builds no
    images and prints no container output, so no_build, force_build,
    use_color and image_removal only matter to image-based engines.
    """
    compose_file_path: Optional[str] = None

    # Creation
    force_recreate: bool = False
    no_recreate: bool = False
    no_build: bool = False  # image-based engines only
    force_build: bool = False  # image-based engines only
    remove_orphans: bool = False
    use_color: bool = False  # image-based engines only
    alternative_service_name: Optional[str] = None
    services: List[str] = []

    # Teardown
    timeout_seconds: Optional[float] = None
    keep_volumes: bool = False
    keep_running: bool = False
    image_removal: ImageRemovalOption = ImageRemovalOption.NONE  # image-based engines only

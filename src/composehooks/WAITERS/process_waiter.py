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
Wait until a named process runs inside a container.
"""
import logging
import os
from typing import Any, Iterable, Optional

from ..MODELS.service_configuration import MAX_TIMEOUT_MS
from .polling import DEFAULT_POLL_INTERVAL, poll_until

logger = logging.getLogger(__name__)


def matches_process(entry: str, process: str) -> bool:
    """
    Checks a process-list entry against a process name.

    An entry matches when it equals the name, or when the basename of its
    first token (the executable of a command line) equals the name.
    """
    if entry == process:
        return True
    parts = entry.split()
    return bool(parts) and os.path.basename(parts[0]) == process


def has_process(entries: Iterable[str], process: str) -> bool:
    return any(matches_process(entry, process) for entry in entries)


def wait_for_process(
    container: Any,
    process: str,
    timeout_ms: Optional[int] = MAX_TIMEOUT_MS,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> None:
    """
    Blocks until container.process_names() lists the given process.

    Args:
        container: Object exposing process_names().
        process: Executable name or full command line to look for.
        timeout_ms: Deadline in milliseconds. The default never expires.
        poll_interval: Seconds between process-list snapshots.

    Raises:
        WaitTimeout: The process never showed up.
        RequestFailed: Listing processes failed on the final attempt.
    """
    name = getattr(container, "name", "?")

    def probe() -> bool:
        return has_process(container.process_names(), process)

    poll_until(probe, timeout_ms, f"process {process} on {name}", interval=poll_interval)
    logger.info("%s: process %s is running", name, process)

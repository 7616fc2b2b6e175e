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
Wait until a container port accepts TCP connections.
"""
import logging
import socket
from typing import Any, Optional

from ..errors import ConfigurationError
from ..MODELS.service_configuration import MAX_TIMEOUT_MS
from ..UTILS.port_finder import parse_port_spec
from .polling import DEFAULT_POLL_INTERVAL, poll_until

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 1.0


def wait_for_port(
    container: Any,
    port: str,
    timeout_ms: Optional[int] = MAX_TIMEOUT_MS,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> None:
    """
    Blocks until the host-visible address of a container port accepts a connection.

    The container maps the port through host_endpoint(port), which returns
    (host, port) or None while the port is not published yet.

    :param container: Object exposing host_endpoint(port).
    :param port: Port spec such as "80/tcp".
    :param timeout_ms: Deadline in milliseconds. The default never expires.
    :param poll_interval: Seconds between connection attempts.
    :raises ConfigurationError: If the spec is malformed or not tcp.
    :raises WaitTimeout: If the port never opened.
    """
    _, proto = parse_port_spec(port)
    if proto != "tcp":
        raise ConfigurationError(f"Only tcp ports can be waited on, got {port!r}")

    name = getattr(container, "name", "?")

    def probe() -> bool:
        endpoint = container.host_endpoint(port)
        if endpoint is None:
            logger.debug("%s: port %s not published yet", name, port)
            return False
        host, host_port = endpoint
        try:
            with socket.create_connection((host, host_port), timeout=CONNECT_TIMEOUT):
                return True
        except OSError as e:
            logger.debug("%s: %s:%s not accepting connections: %s", name, host, host_port, e)
            return False

    poll_until(probe, timeout_ms, f"port {port} on {name}", interval=poll_interval)
    logger.info("%s: port %s is open", name, port)

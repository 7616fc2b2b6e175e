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
Utilities for port specifications and finding free ports on the host.
"""
import socket
from typing import Tuple

from ..errors import ConfigurationError

PROTOCOLS = ("tcp", "udp")


def parse_port_spec(spec: str) -> Tuple[int, str]:
    """
    Parses a port specification such as "80", "80/tcp" or "53/udp".

    :param spec: Port number with an optional protocol suffix.
    :return: The port number and the lower-cased protocol (default tcp).
    :raises ConfigurationError: If the port or protocol is invalid.
    """
    text = str(spec).strip()
    port_text, _, proto = text.partition("/")
    proto = (proto or "tcp").lower()
    if proto not in PROTOCOLS:
        raise ConfigurationError(f"Unsupported protocol in port spec {spec!r}")
    try:
        port = int(port_text)
    except ValueError:
        raise ConfigurationError(f"Invalid port spec {spec!r}") from None
    if not 0 < port < 65536:
        raise ConfigurationError(f"Port out of range in port spec {spec!r}")
    return port, proto


def get_free_port() -> int:
    """
    Finds a free port on localhost.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('', 0))
        return s.getsockname()[1]


def is_port_free(port: int) -> bool:
    """
    Checks if a port is free on localhost.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind(('', port))
            return True
        except OSError:
            return False

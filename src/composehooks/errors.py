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
Exceptions raised by hook declarations, wait strategies and lifecycle transitions.
"""
from typing import Optional


class ComposeHooksError(Exception):
    """Base class for all composehooks errors."""


class ConfigurationError(ComposeHooksError, ValueError):
    """
    An invalid declaration, e.g. an unsupported HTTP method or a malformed port.
    Raised when the declaration is made, not when the hook fires.
    """


class WaitTimeout(ComposeHooksError, TimeoutError):
    """A wait strategy's condition did not hold within its timeout."""

    def __init__(self, what: str, timeout_ms: Optional[int]):
        super().__init__(f"Timed out after {timeout_ms} ms waiting for {what}")
        self.what = what
        self.timeout_ms = timeout_ms


class ExecutionFault(ComposeHooksError):
    """A command executed in a resolved container exited non-zero."""

    def __init__(
        self,
        service: str,
        command: str,
        exit_code: Optional[int] = None,
        error: str = "",
    ):
        super().__init__(
            f"Failed to execute {command} on {service} "
            f"(exit code {exit_code}) error: {error}"
        )
        self.service = service
        self.command = command
        self.exit_code = exit_code
        self.error = error


class RequestFailed(ComposeHooksError):
    """The probe behind a wait strategy errored on its final attempt."""

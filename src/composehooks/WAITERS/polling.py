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
Deadline-bounded polling shared by the wait strategies.

Every wait is a tenacity retry loop: the probe runs, and while it reports
"not ready" (a falsy result) or raises, the loop sleeps and tries again until
the deadline passes. Sleeps are clipped to the time left so a wait gives up
as close to its deadline as the probe allows.
"""
import logging
from typing import Callable, Optional, Tuple, Type

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_result,
    stop_after_delay,
    stop_never,
)

from ..errors import RequestFailed, WaitTimeout
from ..MODELS.service_configuration import MAX_TIMEOUT_MS

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5


def is_unbounded(timeout_ms: Optional[int]) -> bool:
    """
    True for NO_TIMEOUT (None) and for MAX_TIMEOUT_MS or more.
    Such waits never give up on their own.
    """
    return timeout_ms is None or timeout_ms >= MAX_TIMEOUT_MS


def stop_for(timeout_ms: Optional[int]):
    """
    Returns the tenacity stop condition for a timeout in milliseconds.
    """
    if is_unbounded(timeout_ms):
        return stop_never
    return stop_after_delay(max(timeout_ms, 0) / 1000.0)


def remaining_seconds(retry_state: RetryCallState, timeout_ms: Optional[int]) -> Optional[float]:
    """
    Seconds left before the deadline, or None for unbounded waits.
    """
    if is_unbounded(timeout_ms):
        return None
    return max(timeout_ms / 1000.0 - retry_state.seconds_since_start, 0.0)


def clipped(delay: float, retry_state: RetryCallState, timeout_ms: Optional[int]) -> float:
    """
    Clips a sleep so it does not run past the deadline.
    """
    left = remaining_seconds(retry_state, timeout_ms)
    if left is None:
        return delay
    return min(delay, left)


def poll_until(
    probe: Callable[[], bool],
    timeout_ms: Optional[int],
    what: str,
    interval: float = DEFAULT_POLL_INTERVAL,
    errors: Tuple[Type[BaseException], ...] = (Exception,),
) -> None:
    """
    Calls probe until it returns a truthy value or the timeout expires.

    Args:
        probe: Returns truthy once the condition holds; may raise one of
            errors, which counts as "not yet".
        timeout_ms: Deadline in milliseconds; None or MAX_TIMEOUT_MS never expire.
        what: Human readable description used in log lines and errors.
        interval: Seconds to sleep between attempts.
        errors: Exception types a probe may raise and still be retried.

    Raises:
        WaitTimeout: The probe kept reporting "not ready" until the deadline.
        RequestFailed: The final attempt raised instead of answering.
    """
    retrying = Retrying(
        stop=stop_for(timeout_ms),
        wait=lambda state: clipped(interval, state, timeout_ms),
        retry=retry_if_result(lambda ready: not ready) | retry_if_exception_type(errors),
        before_sleep=before_sleep_log(logger, logging.DEBUG),
    )
    try:
        retrying(probe)
    except RetryError as e:
        last = e.last_attempt
        if last.failed:
            raise RequestFailed(f"Probe failed while waiting for {what}: {last.exception()}") from last.exception()
        raise WaitTimeout(what, timeout_ms) from None

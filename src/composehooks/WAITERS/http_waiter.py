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
Wait until a URL answers in an acceptable way.
"""
import itertools
import logging
from typing import Optional, Tuple
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_result,
)

from ..errors import ConfigurationError, RequestFailed, WaitTimeout
from ..MODELS.container_handle import Continuation, RequestResponse
from ..MODELS.service_configuration import DEFAULT_HTTP_TIMEOUT_MS, HTTP_METHODS
from .polling import clipped, is_unbounded, remaining_seconds, stop_for

logger = logging.getLogger(__name__)

# Delay before retrying after a non-2xx answer or a network fault
RETRY_DELAY_MS = 500
REQUEST_TIMEOUT = 30.0


def normalize_http_method(method: Optional[str]) -> str:
    """
    Upper-cases a method name and checks it is GET, PUT, POST or DELETE.

    :raises ConfigurationError: For any other method.
    """
    normalized = (method or "GET").upper()
    if normalized not in HTTP_METHODS:
        raise ConfigurationError(
            f"Unsupported HTTP method {method!r}, expected one of {', '.join(HTTP_METHODS)}"
        )
    return normalized


def default_continuation(response: RequestResponse, attempt: int) -> int:
    """Stop on any 2xx answer, otherwise try again shortly."""
    return 0 if response.ok else RETRY_DELAY_MS


def send_request(
    url: str,
    method: str = "GET",
    content_type: str = "application/json",
    body: Optional[str] = None,
    timeout: float = REQUEST_TIMEOUT,
) -> RequestResponse:
    """
    Issues one request. HTTP error statuses come back as responses;
    connection-level problems raise URLError or OSError.
    """
    data = body.encode("utf-8") if body is not None else None
    request = Request(url, data=data, method=method)
    if data is not None or method in ("PUT", "POST"):
        request.add_header("Content-Type", content_type)

    try:
        with urlopen(request, timeout=timeout) as response:
            charset = response.headers.get_content_charset() or "utf-8"
            return RequestResponse(
                status=response.status,
                body=response.read().decode(charset, errors="replace"),
                headers=dict(response.headers),
            )
    except HTTPError as e:
        charset = e.headers.get_content_charset() if e.headers else None
        payload = e.read() if e.fp else b""
        return RequestResponse(
            status=e.code,
            body=payload.decode(charset or "utf-8", errors="replace"),
            headers=dict(e.headers or {}),
        )


def wait_for_http(
    url: str,
    timeout_ms: Optional[int] = DEFAULT_HTTP_TIMEOUT_MS,
    continuation: Optional[Continuation] = None,
    method: str = "GET",
    content_type: str = "application/json",
    body: Optional[str] = None,
) -> str:
    """
    Polls a URL until the continuation says to stop.

    After each response the continuation is called with the response and the
    zero-based attempt count and returns how many milliseconds to wait before
    asking again; None, zero or less ends the wait. Without a continuation the wait
    ends on the first 2xx response. Network faults are retried after a short
    delay while time remains.

    :param url: URL including any query parameters.
    :param timeout_ms: Overall deadline in milliseconds; None never expires.
    :param continuation: Optional (response, attempt) -> delay_ms callable.
    :param method: GET, PUT, POST or DELETE.
    :param content_type: Content type sent with a body.
    :param body: Optional request body.
    :return: The body of the last response.
    :raises ConfigurationError: If the method is not supported.
    :raises WaitTimeout: If the continuation still wanted to wait at the deadline.
    :raises RequestFailed: If the last attempt failed at the network level.
    """
    method = normalize_http_method(method)
    continuation = continuation or default_continuation
    attempts = itertools.count()

    def attempt() -> Tuple[RequestResponse, int]:
        request_timeout = REQUEST_TIMEOUT
        if not is_unbounded(timeout_ms):
            request_timeout = min(REQUEST_TIMEOUT, max(timeout_ms / 1000.0, 0.1))
        response = send_request(url, method, content_type, body, timeout=request_timeout)
        delay_ms = continuation(response, next(attempts))
        return response, delay_ms if delay_ms is not None and delay_ms > 0 else 0

    def next_delay(retry_state: RetryCallState) -> float:
        if retry_state.outcome.failed:
            delay_ms = RETRY_DELAY_MS
        else:
            delay_ms = retry_state.outcome.result()[1]
        return clipped(delay_ms / 1000.0, retry_state, timeout_ms)

    def keep_waiting(result: Tuple[RequestResponse, int]) -> bool:
        return result[1] > 0

    retrying = Retrying(
        stop=stop_for(timeout_ms),
        wait=next_delay,
        retry=retry_if_result(keep_waiting) | retry_if_exception_type((URLError, OSError)),
        before_sleep=before_sleep_log(logger, logging.DEBUG),
    )
    try:
        response, _ = retrying(attempt)
    except RetryError as e:
        last = e.last_attempt
        if last.failed:
            raise RequestFailed(f"{method} {url} failed: {last.exception()}") from last.exception()
        raise WaitTimeout(f"{method} {url}", timeout_ms) from None

    logger.info("%s %s answered %s", method, url, response.status)
    return response.body

r"""Callback types and data structures for observability.

The executor does not print or log response bodies on its own. Callers
that want diagnostics opt in through four lifecycle hooks:

- on_request: Called before each attempt is sent
- on_retry: Called before each backoff wait
- on_response: Called with the raw body of every received response
- on_failure: Called when a call ends with an error

Example:
    ```pycon
    >>> from langdock import Client, ClientConfig
    >>> from langdock.callbacks import ResponseInfo
    >>> def echo(info: ResponseInfo) -> None:
    ...     print(info.status_code, info.body.decode())
    ...
    >>> client = Client(config=ClientConfig(api_key="secret", on_response=echo))  # doctest: +SKIP

    ```
"""

from __future__ import annotations

__all__ = ["FailureInfo", "RequestInfo", "ResponseInfo", "RetryInfo"]

from dataclasses import dataclass


@dataclass
class RequestInfo:
    """Information passed to on_request callback.

    Attributes:
        url: The URL being requested.
        method: The HTTP method (e.g., "GET", "POST").
        attempt: The current attempt number (1-indexed). First attempt is 1.
        max_retries: Maximum number of attempts configured for the call.
    """

    url: str
    method: str
    attempt: int
    max_retries: int


@dataclass
class RetryInfo:
    """Information passed to on_retry callback.

    Attributes:
        url: The URL being requested.
        method: The HTTP method (e.g., "GET", "POST").
        attempt: The number of the attempt about to be made (1-indexed).
            First retry is attempt 2.
        max_retries: Maximum number of attempts configured for the call.
        wait_time: The backoff delay in seconds before this retry.
        error: The transient error that triggered the retry.
    """

    url: str
    method: str
    attempt: int
    max_retries: int
    wait_time: float
    error: Exception


@dataclass
class ResponseInfo:
    """Information passed to on_response callback.

    Attributes:
        url: The URL that was requested.
        method: The HTTP method (e.g., "GET", "POST").
        attempt: The attempt number that produced the response (1-indexed).
        status_code: The HTTP status code.
        body: The raw response body.
    """

    url: str
    method: str
    attempt: int
    status_code: int
    body: bytes


@dataclass
class FailureInfo:
    """Information passed to on_failure callback.

    Attributes:
        url: The URL that was requested.
        method: The HTTP method (e.g., "GET", "POST").
        attempt: The number of attempts made (1-indexed).
        max_retries: Maximum number of attempts configured for the call.
        error: The terminal error raised to the caller.
        total_time: Total time spent on all attempts including backoff (seconds).
    """

    url: str
    method: str
    attempt: int
    max_retries: int
    error: BaseException
    total_time: float

r"""Callback manager for orchestrating retry lifecycle events.

This module provides the CallbackManager class that handles invocation
of user-defined callbacks at various points of a call.
"""

from __future__ import annotations

__all__ = ["CallbackManager"]

import time
from typing import TYPE_CHECKING

from langdock.callbacks import FailureInfo, RequestInfo, ResponseInfo, RetryInfo

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from langdock.core.config import ClientConfig
    from langdock.request import RequestDescription


class CallbackManager:
    """Manages callback invocations during the retry lifecycle.

    Attempt numbers are 0-indexed internally and passed to callbacks as
    1-indexed values.

    Args:
        on_request: Optional callback invoked before each attempt.
        on_retry: Optional callback invoked before each backoff wait.
        on_response: Optional callback invoked with each raw response body.
        on_failure: Optional callback invoked when a call fails.
    """

    def __init__(
        self,
        on_request: Callable[[RequestInfo], None] | None = None,
        on_retry: Callable[[RetryInfo], None] | None = None,
        on_response: Callable[[ResponseInfo], None] | None = None,
        on_failure: Callable[[FailureInfo], None] | None = None,
    ) -> None:
        self._on_request = on_request
        self._on_retry = on_retry
        self._on_response = on_response
        self._on_failure = on_failure

    @classmethod
    def from_config(cls, config: ClientConfig) -> CallbackManager:
        """Create a manager from the callbacks of a client config."""
        return cls(
            on_request=config.on_request,
            on_retry=config.on_retry,
            on_response=config.on_response,
            on_failure=config.on_failure,
        )

    def on_request(self, request: RequestDescription, attempt: int, max_retries: int) -> None:
        if self._on_request is not None:
            self._on_request(
                RequestInfo(
                    url=request.url,
                    method=request.method,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                )
            )

    def on_retry(
        self,
        request: RequestDescription,
        attempt: int,
        max_retries: int,
        sleep_time: float,
        error: Exception,
    ) -> None:
        """Invoke on_retry callback.

        Args:
            request: The request description of the call.
            attempt: The attempt about to be made (0-indexed).
            max_retries: Maximum number of attempts.
            sleep_time: Backoff delay before the attempt.
            error: The transient error that triggered the retry.
        """
        if self._on_retry is not None:
            self._on_retry(
                RetryInfo(
                    url=request.url,
                    method=request.method,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    wait_time=sleep_time,
                    error=error,
                )
            )

    def on_response(
        self, request: RequestDescription, attempt: int, response: httpx.Response
    ) -> None:
        if self._on_response is not None:
            self._on_response(
                ResponseInfo(
                    url=request.url,
                    method=request.method,
                    attempt=attempt + 1,
                    status_code=response.status_code,
                    body=response.content,
                )
            )

    def on_failure(
        self,
        request: RequestDescription,
        attempt: int,
        max_retries: int,
        error: BaseException,
        start_time: float,
    ) -> None:
        """Invoke on_failure callback.

        Args:
            request: The request description of the call.
            attempt: The last attempt made (0-indexed).
            max_retries: Maximum number of attempts.
            error: The terminal error.
            start_time: Timestamp when the call started.
        """
        if self._on_failure is not None:
            self._on_failure(
                FailureInfo(
                    url=request.url,
                    method=request.method,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    error=error,
                    total_time=time.time() - start_time,
                )
            )

r"""Asynchronous retry executor for HTTP requests.

This module provides the AsyncRetryExecutor class that delivers a
request description through an ``httpx.AsyncClient`` with automatic
retry logic. Both the in-flight send and the backoff sleep race against
the cancellation token of the call.
"""

from __future__ import annotations

__all__ = ["AsyncRetryExecutor"]

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

from langdock.core.validation import validate_max_retries
from langdock.exceptions import LangdockError
from langdock.retry.decider import Outcome, RetryDecider
from langdock.retry.executor_core import (
    aiter_content,
    bounded_timeout,
    finish_response,
    open_body,
)
from langdock.retry.manager import CallbackManager
from langdock.retry.strategy import RetryStrategy
from langdock.utils.structured_logging import log_structured

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from langdock.cancel import CancelToken
    from langdock.core.config import ClientConfig
    from langdock.request import RequestDescription

T = TypeVar("T")

logger: logging.Logger = logging.getLogger(__name__)


async def _guarded(awaitable: Awaitable[T], cancel: CancelToken | None) -> T:
    if cancel is None:
        return await awaitable
    return await cancel.race(awaitable)


class AsyncRetryExecutor:
    """Executes async requests with automatic retry logic.

    This is the asynchronous counterpart of ``RetryExecutor`` and follows
    the same state machine. ``asyncio.sleep`` is used for backoff delays,
    allowing other tasks to run during retry waits.

    Args:
        client: The async transport used to send requests.
        config: The client configuration.

    Attributes:
        client: The async transport used to send requests.
        config: The client configuration.
        strategy: Strategy for calculating retry delays.
        decider: Logic for classifying attempts.
        callbacks: Manager for invoking callbacks.

    Example:
        ```pycon
        >>> import asyncio
        >>> import httpx
        >>> from langdock.core.config import ClientConfig
        >>> from langdock.request import build_request
        >>> from langdock.retry import AsyncRetryExecutor
        >>> async def main():
        ...     config = ClientConfig(api_key="secret")
        ...     async with httpx.AsyncClient() as client:
        ...         executor = AsyncRetryExecutor(client, config)
        ...         request = build_request(config, "/knowledge/search", "POST", b'{"query": "q"}')
        ...         return await executor.execute(request, into=dict)
        ...
        >>> asyncio.run(main())  # doctest: +SKIP

        ```
    """

    def __init__(self, client: httpx.AsyncClient, config: ClientConfig) -> None:
        self.client = client
        self.config = config
        self.strategy: RetryStrategy = RetryStrategy(config.backoff_strategy, config.rng)
        self.decider: RetryDecider = RetryDecider()
        self.callbacks: CallbackManager = CallbackManager.from_config(config)

    async def execute(
        self,
        request: RequestDescription,
        max_retries: int | None = None,
        into: Callable[[Any], T] | None = None,
        cancel: CancelToken | None = None,
    ) -> T | None:
        """Deliver a request and decode the final response.

        See ``RetryExecutor.execute`` for the retry policy. In addition,
        the token aborts an in-flight send: the pending request is
        cancelled and the token's cause is raised.

        Args:
            request: The request description to deliver.
            max_retries: Maximum number of attempts. Defaults to the
                configured value.
            into: Optional callable building the destination shape from
                the parsed JSON body.
            cancel: Optional cancellation token.

        Returns:
            The decoded response body, or ``None`` when nothing was
            decoded.

        Raises:
            LangdockError: The terminal error of the call (see
                ``RetryExecutor.execute``).
            BaseException: The cancellation cause when ``cancel`` fires.
        """
        max_retries = self.config.max_retries if max_retries is None else max_retries
        validate_max_retries(max_retries)

        start_time = time.time()
        last_error: LangdockError | None = None
        attempt = 0
        for attempt in range(max_retries):
            try:
                if attempt > 0:
                    await self._backoff(request, attempt, max_retries, last_error, cancel)
                if cancel is not None:
                    cancel.raise_if_cancelled()
                content = open_body(request, last_error)
            except BaseException as exc:
                self.callbacks.on_failure(request, attempt, max_retries, exc, start_time)
                raise

            if content is not None and not isinstance(content, bytes):
                content = aiter_content(content)
            self.callbacks.on_request(request, attempt, max_retries)
            http_request = self.client.build_request(
                request.method,
                request.url,
                headers=request.headers,
                content=content,
                timeout=bounded_timeout(self.client.timeout, cancel)
                or httpx.USE_CLIENT_DEFAULT,
            )
            try:
                response = await _guarded(self.client.send(http_request), cancel)
            except httpx.HTTPError as exc:
                if cancel is not None and cancel.cancelled:
                    self.callbacks.on_failure(
                        request, attempt, max_retries, cancel.cause, start_time
                    )
                    raise cancel.cause from exc
                result = self.decider.classify_exception(exc, request)
            except BaseException as exc:
                if isinstance(exc, LangdockError) or (cancel is not None and exc is cancel.cause):
                    self.callbacks.on_failure(request, attempt, max_retries, exc, start_time)
                raise
            else:
                self.callbacks.on_response(request, attempt, response)
                result = self.decider.classify_response(response, request)

            if result.outcome is Outcome.SUCCESS:
                try:
                    return finish_response(result.response, request, into)
                except LangdockError as exc:
                    self.callbacks.on_failure(request, attempt, max_retries, exc, start_time)
                    raise
            if result.outcome is Outcome.FATAL:
                self.callbacks.on_failure(
                    request, attempt, max_retries, result.error, start_time
                )
                raise result.error

            last_error = result.error
            log_structured(
                logger,
                logging.DEBUG,
                f"{request.method} request to {request.url} failed on attempt "
                f"{attempt + 1}/{max_retries}: {last_error}",
                method=request.method,
                url=request.url,
                attempt=attempt + 1,
                max_retries=max_retries,
                error_kind=type(last_error).__name__,
            )

        logger.debug(
            f"{request.method} request to {request.url} exhausted {max_retries} attempts"
        )
        self.callbacks.on_failure(request, attempt, max_retries, last_error, start_time)
        raise last_error

    async def _backoff(
        self,
        request: RequestDescription,
        attempt: int,
        max_retries: int,
        last_error: LangdockError,
        cancel: CancelToken | None,
    ) -> None:
        sleep_time = self.strategy.calculate_delay(attempt - 1)
        self.callbacks.on_retry(request, attempt, max_retries, sleep_time, last_error)
        log_structured(
            logger,
            logging.DEBUG,
            f"{request.method} request to {request.url}: waiting {sleep_time:.2f}s "
            f"before attempt {attempt + 1}/{max_retries}",
            method=request.method,
            url=request.url,
            attempt=attempt + 1,
            delay=sleep_time,
        )
        await _guarded(asyncio.sleep(sleep_time), cancel)

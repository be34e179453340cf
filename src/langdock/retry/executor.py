r"""Synchronous retry executor for HTTP requests.

This module provides the RetryExecutor class that delivers a request
description through an ``httpx.Client`` with automatic retry logic.
"""

from __future__ import annotations

__all__ = ["RetryExecutor"]

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

from langdock.core.validation import validate_max_retries
from langdock.exceptions import LangdockError
from langdock.retry.decider import Outcome, RetryDecider
from langdock.retry.executor_core import bounded_timeout, finish_response, open_body
from langdock.retry.manager import CallbackManager
from langdock.retry.strategy import RetryStrategy
from langdock.utils.structured_logging import log_structured

if TYPE_CHECKING:
    from collections.abc import Callable

    from langdock.cancel import CancelToken
    from langdock.core.config import ClientConfig
    from langdock.request import RequestDescription

T = TypeVar("T")

logger: logging.Logger = logging.getLogger(__name__)


class RetryExecutor:
    """Executes requests with automatic retry logic.

    The executor orchestrates the following components:
    - RetryStrategy: Calculates jittered backoff delays between attempts
    - RetryDecider: Classifies each attempt as success, transient or fatal
    - CallbackManager: Invokes user-defined callbacks at lifecycle events

    The executor holds no per-call state, so one instance can serve
    concurrent calls from several threads.

    Args:
        client: The transport used to send requests.
        config: The client configuration.

    Attributes:
        client: The transport used to send requests.
        config: The client configuration.
        strategy: Strategy for calculating retry delays.
        decider: Logic for classifying attempts.
        callbacks: Manager for invoking callbacks.
    """

    def __init__(self, client: httpx.Client, config: ClientConfig) -> None:
        self.client = client
        self.config = config
        self.strategy: RetryStrategy = RetryStrategy(config.backoff_strategy, config.rng)
        self.decider: RetryDecider = RetryDecider()
        self.callbacks: CallbackManager = CallbackManager.from_config(config)
        # Threads are only started by sends that carry a cancel token.
        self._send_pool = ThreadPoolExecutor(thread_name_prefix="langdock-send")

    def execute(
        self,
        request: RequestDescription,
        max_retries: int | None = None,
        into: Callable[[Any], T] | None = None,
        cancel: CancelToken | None = None,
    ) -> T | None:
        """Deliver a request and decode the final response.

        Attempts the request up to ``max_retries`` times in total. Network
        errors, 429 and >= 500 responses are retried after a jittered
        exponential backoff; every other outcome ends the call. The body
        is reopened before each retried attempt.

        Args:
            request: The request description to deliver.
            max_retries: Maximum number of attempts. Defaults to the
                configured value.
            into: Optional callable building the destination shape from
                the parsed JSON body.
            cancel: Optional cancellation token. It interrupts the
                backoff wait and an in-flight send, and bounds the
                transport timeout by its deadline.

        Returns:
            The decoded response body, or ``None`` when nothing was
            decoded.

        Raises:
            RateLimitError: If the last of the exhausted attempts got a 429.
            ServerError: If the last of the exhausted attempts got a 5xx.
            NetworkError: If the last of the exhausted attempts failed at
                the network level.
            ClientStatusError: If the response status is a non-429 4xx.
            DecodeError: If the body does not fit the destination shape.
            TransportError: If the transport failed for a non-network reason.
            BodyNotReplayableError: If a one-shot body must be resent.
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
                    self._backoff(request, attempt, max_retries, last_error, cancel)
                if cancel is not None:
                    cancel.raise_if_cancelled()
                content = open_body(request, last_error)
            except BaseException as exc:
                self.callbacks.on_failure(request, attempt, max_retries, exc, start_time)
                raise

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
                response = self._send(http_request, cancel)
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

    def close(self) -> None:
        """Release the worker threads used for cancellable sends.

        Sends that were abandoned by a cancelled call finish in the
        background.
        """
        self._send_pool.shutdown(wait=False)

    def _send(self, http_request: httpx.Request, cancel: CancelToken | None) -> httpx.Response:
        if cancel is None:
            return self.client.send(http_request)
        return cancel.run_in(self._send_pool, self.client.send, http_request)

    def _backoff(
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
        if cancel is None:
            time.sleep(sleep_time)
        elif cancel.wait(sleep_time):
            raise cancel.cause

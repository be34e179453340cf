r"""Classification of attempt outcomes.

This module provides the RetryDecider class that turns the result of a
single delivery attempt (a response or a transport exception) into an
``AttemptResult``: success, transient failure or fatal failure. Status
codes are always classified before any body decoding happens.
"""

from __future__ import annotations

__all__ = ["AttemptResult", "Outcome", "RetryDecider", "is_network_error"]

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from langdock.exceptions import (
    LangdockError,
    NetworkError,
    RateLimitError,
    ServerError,
    TransportError,
)

if TYPE_CHECKING:
    from langdock.request import RequestDescription

logger: logging.Logger = logging.getLogger(__name__)

# Transport failures that may succeed when the same request is sent again
NETWORK_ERRORS = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
    httpx.ProxyError,
)


class Outcome(enum.Enum):
    """Tri-state result of one delivery attempt."""

    SUCCESS = "success"
    TRANSIENT = "transient"
    FATAL = "fatal"


@dataclass(frozen=True)
class AttemptResult:
    """Classified result of one delivery attempt.

    Attributes:
        outcome: The outcome kind.
        response: The response, for ``SUCCESS`` and status-based
            ``TRANSIENT`` outcomes.
        error: The failure cause, for ``TRANSIENT`` and ``FATAL``
            outcomes.
    """

    outcome: Outcome
    response: httpx.Response | None = None
    error: LangdockError | None = None


def is_network_error(exc: BaseException) -> bool:
    r"""Return whether a transport exception is a network-level failure.

    Example:
        ```pycon
        >>> import httpx
        >>> from langdock.retry.decider import is_network_error
        >>> is_network_error(httpx.ConnectError("refused"))
        True
        >>> is_network_error(httpx.UnsupportedProtocol("ftp"))
        False

        ```
    """
    return isinstance(exc, NETWORK_ERRORS)


class RetryDecider:
    """Decides whether an attempt is final or must be retried.

    Status code policy:

    - 429 is transient and reported as ``RateLimitError``;
    - any status >= 500 is transient and reported as ``ServerError``;
    - every other status ends the retry loop and goes to decoding.
    """

    def classify_response(
        self, response: httpx.Response, request: RequestDescription
    ) -> AttemptResult:
        """Classify a received response.

        Args:
            response: The HTTP response.
            request: The request description of the call.

        Returns:
            The classified result.
        """
        status_code = response.status_code
        if status_code == httpx.codes.TOO_MANY_REQUESTS:
            logger.debug(f"{request.method} request to {request.url} was rate limited")
            return AttemptResult(Outcome.TRANSIENT, response=response, error=RateLimitError())
        if status_code >= 500:
            logger.debug(
                f"{request.method} request to {request.url} failed with status {status_code}"
            )
            return AttemptResult(
                Outcome.TRANSIENT,
                response=response,
                error=ServerError(
                    status_code, response=response, method=request.method, url=request.url
                ),
            )
        return AttemptResult(Outcome.SUCCESS, response=response)

    def classify_exception(
        self, exc: httpx.HTTPError, request: RequestDescription
    ) -> AttemptResult:
        """Classify an exception raised by the transport.

        Args:
            exc: The exception raised while sending the request.
            request: The request description of the call.

        Returns:
            A transient result wrapping the exception in ``NetworkError``
            for network-level failures, a fatal ``TransportError`` result
            otherwise.
        """
        error_type = type(exc).__name__
        if is_network_error(exc):
            logger.debug(
                f"{request.method} request to {request.url} encountered {error_type}: {exc}"
            )
            return AttemptResult(
                Outcome.TRANSIENT,
                error=NetworkError(
                    f"{request.method} request to {request.url} failed: {error_type}: {exc}",
                    method=request.method,
                    url=request.url,
                    cause=exc,
                ),
            )
        return AttemptResult(
            Outcome.FATAL,
            error=TransportError(
                f"{request.method} request to {request.url} failed: {error_type}: {exc}",
                method=request.method,
                url=request.url,
                cause=exc,
            ),
        )

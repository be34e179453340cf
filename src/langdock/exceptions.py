r"""Exception hierarchy for the Langdock client.

Every error raised by the client derives from ``LangdockError``. The
transient errors (``NetworkError``, ``RateLimitError`` and
``ServerError``) are the only ones the executor retries; all the others
terminate a call immediately.
"""

from __future__ import annotations

__all__ = [
    "BodyNotReplayableError",
    "Cancelled",
    "ClientStatusError",
    "ConstructionError",
    "DeadlineExceeded",
    "DecodeError",
    "LangdockError",
    "NetworkError",
    "RateLimitError",
    "ServerError",
    "TransientError",
    "TransportError",
]

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import httpx


class LangdockError(Exception):
    """Base class for all errors raised by the Langdock client.

    Args:
        message: A human-readable description of the failure.
        method: The HTTP method of the failed call, if known.
        url: The URL of the failed call, if known.
        cause: The underlying exception, if any. It is also stored as
            ``__cause__`` so tracebacks show the full chain.

    Example:
        ```pycon
        >>> from langdock.exceptions import LangdockError
        >>> error = LangdockError("boom", method="GET", url="https://api.langdock.com/x")
        >>> error.method
        'GET'
        >>> str(error)
        'boom'

        ```
    """

    def __init__(
        self,
        message: str,
        *,
        method: str | None = None,
        url: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.method = method
        self.url = url
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class ConstructionError(LangdockError):
    """Raised when a request description cannot be built."""


class BodyNotReplayableError(LangdockError):
    """Raised when a retry needs a request body that was already
    consumed and cannot be regenerated."""


class TransportError(LangdockError):
    """Raised for transport failures that are not network-level, for
    example an unsupported protocol or too many redirects."""


class TransientError(LangdockError):
    """Base class for failures that are eligible for retry."""


class NetworkError(TransientError):
    """Raised for low-level network failures (timeouts, refused or
    reset connections, protocol errors from the remote end)."""


class RateLimitError(TransientError):
    """Raised when the remote end answers ``429 Too Many Requests``.

    The signal carries no payload.

    Example:
        ```pycon
        >>> from langdock.exceptions import RateLimitError
        >>> str(RateLimitError())
        'Rate limit exceeded.'

        ```
    """

    def __init__(self) -> None:
        super().__init__("Rate limit exceeded.")


class ServerError(TransientError):
    """Raised when the remote end answers with a status code >= 500.

    Args:
        status_code: The HTTP status code of the response.
        response: The response object.
        method: The HTTP method of the failed call.
        url: The URL of the failed call.
    """

    def __init__(
        self,
        status_code: int,
        *,
        response: httpx.Response | None = None,
        method: str | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(
            f"The request failed with status code {status_code}.", method=method, url=url
        )
        self.status_code = status_code
        self.response = response


class ClientStatusError(LangdockError):
    """Raised when the remote end answers with a 4xx status other than
    429.

    The response body is decoded before this error is raised, so
    ``payload`` holds the decoded destination shape when one was
    requested and the body was not empty.

    Args:
        status_code: The HTTP status code of the response.
        response: The response object.
        payload: The decoded response body, or ``None``.
        method: The HTTP method of the failed call.
        url: The URL of the failed call.
    """

    def __init__(
        self,
        status_code: int,
        *,
        response: httpx.Response | None = None,
        payload: Any = None,
        method: str | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(
            f"{method} request to {url} failed with status {status_code}", method=method, url=url
        )
        self.status_code = status_code
        self.response = response
        self.payload = payload


class DecodeError(LangdockError):
    """Raised when the response body cannot be decoded into the
    destination shape.

    Args:
        status_code: The HTTP status code of the response.
        body: The raw response body.
        cause: The parsing exception.
        method: The HTTP method of the call.
        url: The URL of the call.
    """

    def __init__(
        self,
        status_code: int,
        body: bytes,
        *,
        cause: BaseException | None = None,
        method: str | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(
            f"Could not decode response body of {method} {url} (status {status_code}): {cause}",
            method=method,
            url=url,
            cause=cause,
        )
        self.status_code = status_code
        self.body = body


class Cancelled(LangdockError):
    """Default cause reported when a ``CancelToken`` is cancelled."""


class DeadlineExceeded(Cancelled):
    """Cause reported when a ``CancelToken`` deadline elapses."""

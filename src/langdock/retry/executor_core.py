r"""Shared core logic for retry executors.

This module provides helper functions used by both the synchronous and
asynchronous retry executors: opening the request body for an attempt,
turning a request description into an ``httpx.Request`` and decoding
the final response.
"""

from __future__ import annotations

__all__ = [
    "aiter_content",
    "bounded_timeout",
    "decode_response",
    "finish_response",
    "open_body",
]

import logging
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

from langdock.exceptions import (
    BodyNotReplayableError,
    ClientStatusError,
    ConstructionError,
    DecodeError,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterator

    from langdock.body import Content
    from langdock.cancel import CancelToken
    from langdock.exceptions import LangdockError
    from langdock.request import RequestDescription

T = TypeVar("T")

logger: logging.Logger = logging.getLogger(__name__)


def open_body(request: RequestDescription, last_error: LangdockError | None) -> Content | None:
    """Open the request body for one attempt.

    Args:
        request: The request description of the call.
        last_error: The transient error of the previous attempt, if any.

    Returns:
        The content to send, or ``None`` when the request has no body.

    Raises:
        BodyNotReplayableError: If a one-shot body must be sent again.
            The previous transient error is chained as the cause.
        ConstructionError: If opening or streaming the body fails, for
            example when a factory or a file read raises.
    """
    if request.body is None:
        return None
    try:
        content = request.body.open()
    except BodyNotReplayableError as exc:
        raise BodyNotReplayableError(
            f"{request.method} request to {request.url} cannot be retried: {exc.message}",
            method=request.method,
            url=request.url,
            cause=last_error,
        ) from last_error
    except Exception as exc:
        raise _body_error(request, exc) from exc
    if isinstance(content, bytes):
        return content
    return _guard_chunks(content, request)


def _body_error(request: RequestDescription, exc: Exception) -> ConstructionError:
    logger.debug(f"{request.method} request to {request.url} failed to read its body: {exc}")
    return ConstructionError(
        f"{request.method} request to {request.url} failed to read its body: "
        f"{type(exc).__name__}: {exc}",
        method=request.method,
        url=request.url,
        cause=exc,
    )


def _guard_chunks(chunks: Iterator[bytes], request: RequestDescription) -> Iterator[bytes]:
    # Read failures surface while the transport streams the body.
    try:
        yield from chunks
    except Exception as exc:
        raise _body_error(request, exc) from exc


async def aiter_content(chunks: Iterator[bytes]) -> AsyncIterator[bytes]:
    """Expose a synchronous chunk iterator as an async byte stream."""
    for chunk in chunks:
        yield chunk


def bounded_timeout(timeout: httpx.Timeout, cancel: CancelToken | None) -> httpx.Timeout | None:
    """Cap every timeout phase by the time left on the cancel token.

    Args:
        timeout: The timeout of the transport.
        cancel: The cancellation token of the call.

    Returns:
        The capped timeout, or ``None`` when the token has no deadline
        and the transport default applies.
    """
    remaining = cancel.remaining() if cancel is not None else None
    if remaining is None:
        return None

    def _cap(value: float | None) -> float:
        return remaining if value is None else min(value, remaining)

    return httpx.Timeout(
        connect=_cap(timeout.connect),
        read=_cap(timeout.read),
        write=_cap(timeout.write),
        pool=_cap(timeout.pool),
    )


def decode_response(
    response: httpx.Response,
    request: RequestDescription,
    into: Callable[[Any], T] | None,
) -> T | None:
    r"""Decode a response body into the destination shape.

    Nothing is decoded when no destination shape is given or when the
    body is empty.

    Args:
        response: The final response of the call.
        request: The request description of the call.
        into: Callable building the destination shape from the parsed
            JSON document, e.g. a dataclass ``from_dict`` constructor.

    Returns:
        The decoded value, or ``None``.

    Raises:
        DecodeError: If the body is not valid JSON or does not fit the
            destination shape.

    Example:
        ```pycon
        >>> import httpx
        >>> from langdock.request import RequestDescription
        >>> from langdock.retry.executor_core import decode_response
        >>> request = RequestDescription("GET", "https://api.langdock.com/x")
        >>> response = httpx.Response(200, json={"status": "ok"})
        >>> decode_response(response, request, dict)
        {'status': 'ok'}
        >>> decode_response(httpx.Response(200), request, dict) is None
        True

        ```
    """
    body = response.content
    if into is None or not body:
        return None
    try:
        return into(response.json())
    except (ValueError, TypeError, KeyError, AttributeError) as exc:
        logger.debug(
            f"{request.method} request to {request.url} returned an undecodable body "
            f"(status {response.status_code}): {exc}"
        )
        raise DecodeError(
            response.status_code,
            body,
            cause=exc,
            method=request.method,
            url=request.url,
        ) from exc


def finish_response(
    response: httpx.Response,
    request: RequestDescription,
    into: Callable[[Any], T] | None,
) -> T | None:
    """Decode the final response and reject client error statuses.

    Args:
        response: A response that was not classified as transient.
        request: The request description of the call.
        into: Optional destination shape.

    Returns:
        The decoded value, or ``None``.

    Raises:
        DecodeError: If decoding fails.
        ClientStatusError: If the status is a 4xx code. The decoded body
            is attached as ``payload``.
    """
    payload = decode_response(response, request, into)
    if response.is_client_error:
        raise ClientStatusError(
            response.status_code,
            response=response,
            payload=payload,
            method=request.method,
            url=request.url,
        )
    return payload

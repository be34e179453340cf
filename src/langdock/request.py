r"""Construction of outbound request descriptions.

A ``RequestDescription`` is the transport-independent description of a
call: method, resolved URL, headers and a replayable body. It is built
once per logical call and turned into a fresh ``httpx.Request`` for every
attempt, so retries never depend on the state left by a previous attempt.
"""

from __future__ import annotations

__all__ = ["RequestDescription", "build_request", "join_url"]

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

from langdock.body import as_body
from langdock.exceptions import ConstructionError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from langdock.body import BodySource, RequestBody
    from langdock.core.config import ClientConfig


@dataclass(frozen=True)
class RequestDescription:
    """Description of one logical HTTP call.

    Attributes:
        method: The HTTP method in upper case.
        url: The absolute URL.
        headers: The headers to send with every attempt.
        body: The request body, or ``None``.
    """

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: RequestBody | None = None


def join_url(base_url: str, path: str) -> str:
    r"""Join a request path onto the configured base address.

    Args:
        base_url: The absolute base address.
        path: The path relative to ``base_url``.

    Returns:
        The absolute URL.

    Raises:
        ConstructionError: If the result is not a valid absolute http(s)
            URL.

    Example:
        ```pycon
        >>> from langdock.request import join_url
        >>> join_url("https://api.langdock.com", "/knowledge/search")
        'https://api.langdock.com/knowledge/search'
        >>> join_url("https://api.langdock.com/", "knowledge/search")
        'https://api.langdock.com/knowledge/search'

        ```
    """
    if path and not path.startswith("/"):
        path = "/" + path
    url = base_url.rstrip("/") + path
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        msg = f"Invalid request URL {url!r}: {exc}"
        raise ConstructionError(msg, url=url, cause=exc) from exc
    if parsed.scheme not in {"http", "https"} or not parsed.host:
        msg = f"Invalid request URL {url!r}: expected an absolute http(s) URL"
        raise ConstructionError(msg, url=url)
    return url


def build_request(
    config: ClientConfig,
    path: str,
    method: str,
    body: BodySource | None = None,
    headers: Mapping[str, str] | None = None,
) -> RequestDescription:
    r"""Build the description of a call against the configured API.

    The ``Accept: application/json`` and bearer ``Authorization`` headers
    are always attached; ``headers`` are merged on top of them. The body
    is wrapped but never read.

    Args:
        config: The client configuration.
        path: The path relative to ``config.base_url``.
        method: The HTTP method.
        body: Optional body source (see ``langdock.body.as_body``).
        headers: Optional extra headers, e.g. ``Content-Type``.

    Returns:
        The request description.

    Raises:
        ConstructionError: If the URL is invalid, the body type is not
            supported, or a one-shot streaming body is combined with a
            retry budget greater than one.

    Example:
        ```pycon
        >>> from langdock.core.config import ClientConfig
        >>> from langdock.request import build_request
        >>> request = build_request(ClientConfig(api_key="secret"), "/knowledge/search", "post")
        >>> request.method, request.url
        ('POST', 'https://api.langdock.com/knowledge/search')
        >>> request.headers["Authorization"]
        'Bearer secret'

        ```
    """
    method = method.upper()
    url = join_url(config.base_url, path)
    try:
        request_body = as_body(body)
    except TypeError as exc:
        raise ConstructionError(str(exc), method=method, url=url, cause=exc) from exc
    if request_body is not None and not request_body.replayable and config.max_retries > 1:
        msg = (
            f"{method} request to {url} has a one-shot streaming body but may be retried "
            f"up to {config.max_retries} times; pass bytes, a seekable file or a "
            "regenerator instead"
        )
        raise ConstructionError(msg, method=method, url=url)

    merged = {
        "Accept": "application/json",
        "Authorization": f"Bearer {config.api_key}",
    }
    if headers:
        merged.update(headers)
    return RequestDescription(method=method, url=url, headers=merged, body=request_body)

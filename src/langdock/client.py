r"""Synchronous client for the Langdock API.

This module provides the ``Client`` class, which exposes the two
operations resource services are built on: ``build`` (construct a
request description) and ``execute`` (deliver it with retries and decode
the response).
"""

from __future__ import annotations

__all__ = ["Client"]

from typing import TYPE_CHECKING, Any, TypeVar

import httpx

from langdock.core.config import ClientConfig
from langdock.knowledge import KnowledgeService
from langdock.request import build_request
from langdock.retry.executor import RetryExecutor

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType
    from typing import Self

    from langdock.body import BodySource
    from langdock.cancel import CancelToken
    from langdock.request import RequestDescription

T = TypeVar("T")


class Client:
    r"""Synchronous Langdock API client.

    The configuration is read-only, so a single client can serve
    concurrent calls from several threads. Connection reuse is left to
    the underlying ``httpx.Client``.

    Args:
        config: Optional ClientConfig instance. If ``None``, a default
            ClientConfig is used.
        client: Optional ``httpx.Client`` used as transport. If ``None``,
            a new client is created with ``config.timeout`` and closed by
            ``close()``. An injected client is never closed.

    Example:
        ```pycon
        >>> from langdock import Client, ClientConfig
        >>> with Client(config=ClientConfig(api_key="secret")) as client:  # doctest: +SKIP
        ...     files = client.knowledge.list_files("0b4d6f5e-6c1a-4f5e-9a57-3f7c2b1e8d90")
        ...

        ```
    """

    def __init__(
        self,
        *,
        config: ClientConfig | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._config: ClientConfig = config or ClientConfig()
        self._owns_client = client is None
        self._client: httpx.Client = client or httpx.Client(timeout=self._config.timeout)
        self._executor: RetryExecutor = RetryExecutor(self._client, self._config)
        self.knowledge: KnowledgeService = KnowledgeService(self)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def config(self) -> ClientConfig:
        return self._config

    def close(self) -> None:
        """Release the send workers and close the transport if this client
        created it."""
        self._executor.close()
        if self._owns_client:
            self._client.close()

    def build(
        self,
        path: str,
        method: str,
        body: BodySource | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> RequestDescription:
        r"""Build a request description against the configured API.

        Args:
            path: The path relative to the configured base URL.
            method: The HTTP method.
            body: Optional body source: bytes or ``str``, a binary file
                object, a zero-argument regenerator, an iterable of byte
                chunks or a ``RequestBody``.
            headers: Optional extra headers.

        Returns:
            The request description.

        Raises:
            ConstructionError: If the request cannot be built.
        """
        return build_request(self._config, path, method, body=body, headers=headers)

    def execute(
        self,
        request: RequestDescription,
        into: Callable[[Any], T] | None = None,
        *,
        max_retries: int | None = None,
        cancel: CancelToken | None = None,
    ) -> T | None:
        r"""Deliver a request with automatic retry logic.

        Args:
            request: The request description, usually from ``build``.
            into: Optional callable building the destination shape from
                the parsed JSON body.
            max_retries: Maximum number of attempts. Defaults to the
                configured value.
            cancel: Optional cancellation token.

        Returns:
            The decoded response body, or ``None``.

        Raises:
            LangdockError: The terminal error of the call.
        """
        return self._executor.execute(request, max_retries=max_retries, into=into, cancel=cancel)

    def request(
        self,
        method: str,
        path: str,
        body: BodySource | None = None,
        into: Callable[[Any], T] | None = None,
        *,
        headers: Mapping[str, str] | None = None,
        cancel: CancelToken | None = None,
    ) -> T | None:
        r"""Build and execute a request in one step.

        Example:
            ```pycon
            >>> from langdock import Client
            >>> with Client() as client:  # doctest: +SKIP
            ...     client.request("DELETE", "/knowledge/folder-id/file-id")
            ...

            ```
        """
        return self.execute(
            self.build(path, method, body=body, headers=headers), into=into, cancel=cancel
        )

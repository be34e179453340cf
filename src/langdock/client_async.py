r"""Asynchronous client for the Langdock API.

This module provides the ``AsyncClient`` class, the asyncio counterpart
of ``Client``.
"""

from __future__ import annotations

__all__ = ["AsyncClient"]

from typing import TYPE_CHECKING, Any, TypeVar

import httpx

from langdock.core.config import ClientConfig
from langdock.knowledge import AsyncKnowledgeService
from langdock.request import build_request
from langdock.retry.executor_async import AsyncRetryExecutor

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType
    from typing import Self

    from langdock.body import BodySource
    from langdock.cancel import CancelToken
    from langdock.request import RequestDescription

T = TypeVar("T")


class AsyncClient:
    r"""Asynchronous Langdock API client.

    Args:
        config: Optional ClientConfig instance. If ``None``, a default
            ClientConfig is used.
        client: Optional ``httpx.AsyncClient`` used as transport. If
            ``None``, a new client is created with ``config.timeout`` and
            closed by ``aclose()``. An injected client is never closed.

    Example:
        ```pycon
        >>> import asyncio
        >>> from langdock import AsyncClient, ClientConfig
        >>> async def main():
        ...     async with AsyncClient(config=ClientConfig(api_key="secret")) as client:
        ...         return await client.knowledge.search("quarterly report")
        ...
        >>> asyncio.run(main())  # doctest: +SKIP

        ```
    """

    def __init__(
        self,
        *,
        config: ClientConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config: ClientConfig = config or ClientConfig()
        self._owns_client = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(
            timeout=self._config.timeout
        )
        self._executor: AsyncRetryExecutor = AsyncRetryExecutor(self._client, self._config)
        self.knowledge: AsyncKnowledgeService = AsyncKnowledgeService(self)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    @property
    def config(self) -> ClientConfig:
        return self._config

    async def aclose(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_client:
            await self._client.aclose()

    def build(
        self,
        path: str,
        method: str,
        body: BodySource | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> RequestDescription:
        """Build a request description (see ``Client.build``)."""
        return build_request(self._config, path, method, body=body, headers=headers)

    async def execute(
        self,
        request: RequestDescription,
        into: Callable[[Any], T] | None = None,
        *,
        max_retries: int | None = None,
        cancel: CancelToken | None = None,
    ) -> T | None:
        """Deliver a request with automatic retry logic (see
        ``Client.execute``)."""
        return await self._executor.execute(
            request, max_retries=max_retries, into=into, cancel=cancel
        )

    async def request(
        self,
        method: str,
        path: str,
        body: BodySource | None = None,
        into: Callable[[Any], T] | None = None,
        *,
        headers: Mapping[str, str] | None = None,
        cancel: CancelToken | None = None,
    ) -> T | None:
        """Build and execute a request in one step."""
        return await self.execute(
            self.build(path, method, body=body, headers=headers), into=into, cancel=cancel
        )

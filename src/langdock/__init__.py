r"""langdock - Resilient client for the Langdock Knowledge API.

This package turns logical API calls into resilient network operations.
Built on top of httpx, it classifies failures, retries transient ones
with jittered exponential backoff, replays request bodies across
attempts and honors caller-driven cancellation.

Key Features:
    - Automatic retry of network errors, 429 and 5xx responses
    - Exponential backoff (100ms doubling, capped at 5s) with +/-50% jitter
    - Explicit replayable request bodies (buffers, regenerators, seekable files)
    - Cancellation tokens with deadlines that interrupt backoff waits
    - Sync and async clients sharing one configuration object
    - Opt-in callbacks for diagnostics instead of console output
    - Knowledge API services (list, upload, update, delete, search)

Example:
    ```pycon
    >>> from langdock import Client, ClientConfig
    >>> with Client(config=ClientConfig(api_key="secret", max_retries=5)) as client:  # doctest: +SKIP
    ...     request = client.build("/knowledge/search", "POST", b'{"query": "q"}')
    ...     payload = client.execute(request, into=dict)
    ...

    ```
"""

from __future__ import annotations

__all__ = [
    "AsyncClient",
    "BodyNotReplayableError",
    "CancelToken",
    "Cancelled",
    "Client",
    "ClientConfig",
    "ClientStatusError",
    "ConstructionError",
    "DeadlineExceeded",
    "DecodeError",
    "LangdockError",
    "NetworkError",
    "RateLimitError",
    "RequestBody",
    "RequestDescription",
    "ServerError",
    "TransientError",
    "TransportError",
    "__version__",
]

from importlib.metadata import PackageNotFoundError, version

from langdock.body import RequestBody
from langdock.cancel import CancelToken
from langdock.client import Client
from langdock.client_async import AsyncClient
from langdock.core.config import ClientConfig
from langdock.exceptions import (
    BodyNotReplayableError,
    Cancelled,
    ClientStatusError,
    ConstructionError,
    DeadlineExceeded,
    DecodeError,
    LangdockError,
    NetworkError,
    RateLimitError,
    ServerError,
    TransientError,
    TransportError,
)
from langdock.request import RequestDescription

try:
    __version__ = version(__name__)
except PackageNotFoundError:  # pragma: no cover
    # Package is not installed, fallback if needed
    __version__ = "0.0.0"

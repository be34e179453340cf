r"""Configuration dataclass and defaults for the Langdock clients.

This module provides configuration constants and a dataclass-based
configuration object shared by ``Client`` and ``AsyncClient``. A config
is immutable once created and is read by every call, so a single client
can serve concurrent calls.
"""

from __future__ import annotations

__all__ = [
    "ClientConfig",
    "DEFAULT_BASE_URL",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_TIMEOUT",
]

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from langdock.core.validation import (
    validate_base_url,
    validate_max_retries,
    validate_timeout,
)

if TYPE_CHECKING:
    import random
    from collections.abc import Callable

    from langdock.backoff import BaseBackoffStrategy
    from langdock.callbacks import FailureInfo, RequestInfo, ResponseInfo, RetryInfo


DEFAULT_BASE_URL = "https://api.langdock.com"

# Maximum number of attempts per call, including the first one
DEFAULT_MAX_RETRIES = 3

# Overall timeout in seconds of the transport created by the client
# when none is injected
DEFAULT_TIMEOUT = 60.0


@dataclass(frozen=True)
class ClientConfig:
    """Configuration for the Langdock clients.

    Note:
        The timeout is only used when the client creates its own
        ``httpx`` transport. An injected transport keeps its own
        timeout settings.

    Args:
        api_key: The API key sent as a bearer credential.
        base_url: The address that request paths are joined with.
        max_retries: Maximum number of attempts per call. Must be >= 1.
        timeout: Overall timeout in seconds of the default transport.
        backoff_strategy: Optional backoff strategy. Defaults to
            exponential backoff starting at 100ms and capped at 5s.
        rng: Optional random source used for jitter. Inject a seeded
            ``random.Random`` for deterministic delays.
        on_request: Optional callback called before each attempt.
        on_retry: Optional callback called before each backoff wait.
        on_response: Optional callback called with every raw response body.
        on_failure: Optional callback called when a call fails.

    Example:
        ```pycon
        >>> from langdock.core.config import ClientConfig
        >>> config = ClientConfig(api_key="secret")
        >>> config.max_retries
        3
        >>> config.base_url
        'https://api.langdock.com'
        >>> config.merge(max_retries=5).max_retries
        5
        >>> config.max_retries  # Original unchanged
        3

        ```
    """

    api_key: str = field(default="", repr=False)
    base_url: str = DEFAULT_BASE_URL
    max_retries: int = DEFAULT_MAX_RETRIES
    timeout: float = DEFAULT_TIMEOUT
    backoff_strategy: BaseBackoffStrategy | None = None
    rng: random.Random | None = field(default=None, compare=False)
    on_request: Callable[[RequestInfo], None] | None = None
    on_retry: Callable[[RetryInfo], None] | None = None
    on_response: Callable[[ResponseInfo], None] | None = None
    on_failure: Callable[[FailureInfo], None] | None = None

    def __post_init__(self) -> None:
        """Validate configuration parameters after initialization.

        Raises:
            ValueError: If any parameter fails validation.
        """
        validate_base_url(self.base_url)
        validate_max_retries(self.max_retries)
        validate_timeout(self.timeout)

    def merge(self, **overrides: Any) -> ClientConfig:
        """Create a new config with specified parameters overridden.

        Only non-None override values are applied.

        Args:
            **overrides: Keyword arguments for parameters to override.

        Returns:
            A new ClientConfig instance with overrides applied.

        Example:
            ```pycon
            >>> from langdock.core.config import ClientConfig
            >>> config = ClientConfig(max_retries=3)
            >>> config.merge(max_retries=None).max_retries
            3
            >>> config.merge(base_url="http://localhost:8080").base_url
            'http://localhost:8080'

            ```
        """
        filtered_overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered_overrides)

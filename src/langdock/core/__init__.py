r"""Core configuration shared by the sync and async clients."""

from __future__ import annotations

__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_TIMEOUT",
    "ClientConfig",
    "validate_base_url",
    "validate_max_retries",
    "validate_timeout",
]

from langdock.core.config import (
    DEFAULT_BASE_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT,
    ClientConfig,
)
from langdock.core.validation import (
    validate_base_url,
    validate_max_retries,
    validate_timeout,
)

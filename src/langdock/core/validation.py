r"""Parameter validation utilities for the client configuration.

This module provides validation functions to ensure configuration
values meet the required constraints before a client uses them.
"""

from __future__ import annotations

__all__ = ["validate_base_url", "validate_max_retries", "validate_timeout"]

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx


def validate_timeout(timeout: float | httpx.Timeout) -> None:
    """Validate timeout parameter.

    Args:
        timeout: Maximum seconds to wait for server responses.
            Must be > 0 if provided as a numeric value.

    Raises:
        ValueError: If timeout is a numeric value <= 0.

    Example:
        ```pycon
        >>> from langdock.core.validation import validate_timeout
        >>> validate_timeout(60.0)
        >>> validate_timeout(0)  # doctest: +SKIP
        Traceback (most recent call last):
        ...
        ValueError: timeout must be > 0, got 0

        ```
    """
    if isinstance(timeout, (int, float)) and timeout <= 0:
        msg = f"timeout must be > 0, got {timeout}"
        raise ValueError(msg)


def validate_max_retries(max_retries: int) -> None:
    """Validate the attempt budget of a call.

    Args:
        max_retries: Maximum number of attempts, including the first one.
            Must be >= 1.

    Raises:
        ValueError: If max_retries is lower than 1.

    Example:
        ```pycon
        >>> from langdock.core.validation import validate_max_retries
        >>> validate_max_retries(3)
        >>> validate_max_retries(0)  # doctest: +SKIP
        Traceback (most recent call last):
        ...
        ValueError: max_retries must be >= 1, got 0

        ```
    """
    if max_retries < 1:
        msg = f"max_retries must be >= 1, got {max_retries}"
        raise ValueError(msg)


def validate_base_url(base_url: str) -> None:
    """Validate the base address the request paths are joined with.

    Args:
        base_url: An absolute ``http`` or ``https`` URL.

    Raises:
        ValueError: If base_url is not an absolute http(s) URL.
    """
    if not base_url.startswith(("http://", "https://")):
        msg = f"base_url must be an absolute http(s) URL, got {base_url!r}"
        raise ValueError(msg)

r"""Exponential backoff strategy."""

from __future__ import annotations

__all__ = ["MAX_EXPONENT", "ExponentialBackoff"]

from langdock.backoff.base import BaseBackoffStrategy

# Exponent beyond which the delay stops doubling
MAX_EXPONENT = 64


class ExponentialBackoff(BaseBackoffStrategy):
    """Exponential backoff strategy.

    Calculates delay as: min(base_delay * (2 ** attempt), max_delay).

    This is the default strategy: 100ms before the second attempt,
    doubling every retry and capped at 5s.

    Args:
        base_delay: The delay before the first retry (default: 0.1).
        max_delay: Maximum delay cap in seconds (default: 5.0). ``None``
            disables the cap.

    Example:
        ```pycon
        >>> from langdock.backoff import ExponentialBackoff
        >>> backoff = ExponentialBackoff()
        >>> backoff.calculate(0)  # First retry
        0.1
        >>> backoff.calculate(1)  # Second retry
        0.2
        >>> backoff.calculate(2)  # Third retry
        0.4
        >>> backoff.calculate(10)  # Would be 102.4, but capped
        5.0

        ```
    """

    def __init__(self, base_delay: float = 0.1, max_delay: float | None = 5.0) -> None:
        if base_delay < 0:
            msg = f"base_delay must be non-negative, got {base_delay}"
            raise ValueError(msg)
        if max_delay is not None and max_delay <= 0:
            msg = f"max_delay must be positive if specified, got {max_delay}"
            raise ValueError(msg)

        self.base_delay = base_delay
        self.max_delay = max_delay

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(base_delay={self.base_delay}, max_delay={self.max_delay})"

    def calculate(self, attempt: int) -> float:
        """Calculate exponential backoff delay.

        Args:
            attempt: The retry number (0-indexed).

        Returns:
            The calculated delay: base_delay * (2 ** attempt),
            capped at max_delay if set. The exponent stops growing
            after ``MAX_EXPONENT`` so that large attempt numbers never
            overflow.
        """
        delay = self.base_delay * 2.0 ** min(attempt, MAX_EXPONENT)
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

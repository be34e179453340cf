r"""Abstract base class for backoff strategies."""

from __future__ import annotations

__all__ = ["BaseBackoffStrategy"]

from abc import ABC, abstractmethod


class BaseBackoffStrategy(ABC):
    """Abstract base class for backoff strategies.

    A backoff strategy determines the base delay to wait before retrying
    a failed attempt. Jitter is applied on top of it by the executor.
    """

    @abstractmethod
    def calculate(self, attempt: int) -> float:
        """Calculate the base backoff delay for a given retry.

        Args:
            attempt: The retry number (0-indexed). For example,
                attempt=0 is the wait before the second attempt,
                attempt=1 the wait before the third attempt, etc.

        Returns:
            The base delay in seconds before the next attempt.
        """

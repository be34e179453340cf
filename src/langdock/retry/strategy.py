r"""Retry strategy for calculating backoff delays.

This module provides the RetryStrategy class for calculating retry
delays.
"""

from __future__ import annotations

__all__ = ["RetryStrategy"]

import random
from typing import TYPE_CHECKING

from langdock.backoff.exponential import ExponentialBackoff
from langdock.utils.sleep import calculate_sleep_time

if TYPE_CHECKING:
    from langdock.backoff.base import BaseBackoffStrategy


class RetryStrategy:
    """Strategy for calculating retry delays with backoff and jitter.

    Each strategy owns its random source, so two clients never share
    jitter state and a seeded generator gives reproducible delays.

    Args:
        backoff_strategy: Backoff strategy instance. Defaults to ExponentialBackoff().
        rng: Random source for the jitter. Defaults to a new ``random.Random()``.

    Attributes:
        backoff_strategy: Backoff strategy instance.
        rng: Random source for the jitter.
    """

    def __init__(
        self,
        backoff_strategy: BaseBackoffStrategy | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.backoff_strategy: BaseBackoffStrategy = (
            backoff_strategy if backoff_strategy is not None else ExponentialBackoff()
        )
        self.rng: random.Random = rng if rng is not None else random.Random()  # noqa: S311

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay before next retry.

        Args:
            attempt: The retry number (0-indexed).

        Returns:
            Sleep time in seconds.
        """
        return calculate_sleep_time(
            attempt=attempt,
            backoff_strategy=self.backoff_strategy,
            rng=self.rng,
        )

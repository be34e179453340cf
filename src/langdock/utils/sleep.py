r"""Backoff and sleep time calculation utilities.

This module provides the function computing the jittered delay between
two attempts of the same call.
"""

from __future__ import annotations

__all__ = ["calculate_sleep_time"]

import logging
import random
from typing import TYPE_CHECKING

from langdock.backoff.exponential import ExponentialBackoff

if TYPE_CHECKING:
    from langdock.backoff.base import BaseBackoffStrategy

logger: logging.Logger = logging.getLogger(__name__)


def calculate_sleep_time(
    attempt: int,
    backoff_strategy: BaseBackoffStrategy | None = None,
    rng: random.Random | None = None,
) -> float:
    """Calculate sleep time for retry with backoff strategy and jitter.

    The sleep time is calculated as follows:
    1. base = backoff_strategy.calculate(attempt)
    2. jitter is drawn uniformly from the half-open range
       [-base / 2, +base / 2)
    3. sleep_time = max(0, base + jitter)

    Args:
        attempt: The retry number (0-indexed). For example,
            attempt=0 is the wait before the second attempt.
        backoff_strategy: BaseBackoffStrategy instance or None.
            Defaults to ExponentialBackoff() (100ms doubling, capped at 5s).
        rng: Random source for the jitter. Defaults to the module-level
            generator of ``random``.

    Returns:
        The calculated sleep time in seconds, including jitter.

    Example:
        ```pycon
        >>> import random
        >>> from langdock.utils.sleep import calculate_sleep_time
        >>> delay = calculate_sleep_time(attempt=0, rng=random.Random(42))
        >>> 0.05 <= delay < 0.15
        True
        >>> delay = calculate_sleep_time(attempt=10, rng=random.Random(42))
        >>> 2.5 <= delay < 7.5
        True

        ```
    """
    if backoff_strategy is None:
        backoff_strategy = ExponentialBackoff()
    base = backoff_strategy.calculate(attempt)
    draw = rng.random() if rng is not None else random.random()  # noqa: S311
    jitter = base * (draw - 0.5)
    sleep_time = max(0.0, base + jitter)
    logger.debug(f"Waiting {sleep_time:.2f}s before retry (base={base:.2f}s, jitter={jitter:.2f}s)")
    return sleep_time

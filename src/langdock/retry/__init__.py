r"""Retry package implementing the resilient execution loop.

Public API:
    - RetryStrategy: Calculates jittered backoff delays
    - RetryDecider: Classifies attempt outcomes
    - CallbackManager: Invokes lifecycle callbacks
    - RetryExecutor: Synchronous retry executor
    - AsyncRetryExecutor: Asynchronous retry executor
"""

from __future__ import annotations

__all__ = [
    "AsyncRetryExecutor",
    "AttemptResult",
    "CallbackManager",
    "Outcome",
    "RetryDecider",
    "RetryExecutor",
    "RetryStrategy",
]

from langdock.retry.decider import AttemptResult, Outcome, RetryDecider
from langdock.retry.executor import RetryExecutor
from langdock.retry.executor_async import AsyncRetryExecutor
from langdock.retry.manager import CallbackManager
from langdock.retry.strategy import RetryStrategy

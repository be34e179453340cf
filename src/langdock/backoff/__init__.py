r"""Backoff strategies for retry delays."""

from __future__ import annotations

__all__ = ["BaseBackoffStrategy", "ExponentialBackoff"]

from langdock.backoff.base import BaseBackoffStrategy
from langdock.backoff.exponential import ExponentialBackoff

r"""Shared test helpers for scripting transport outcomes.

``ScriptedTransport`` plays a list of outcomes through
``httpx.MockTransport``: an ``int`` is a status code with an empty body,
a ``(status, payload)`` tuple adds a JSON (dict/list) or raw (bytes)
body, and an exception instance is raised by the transport. The last
outcome repeats once the script is exhausted.
"""

from __future__ import annotations

__all__ = ["TEST_BASE_URL", "ScriptedTransport", "make_response"]

import asyncio
import time
from typing import Any

import httpx

TEST_BASE_URL = "https://api.test"


def make_response(outcome: int | tuple[int, Any]) -> httpx.Response:
    """Create a fresh response from a scripted outcome."""
    if isinstance(outcome, int):
        return httpx.Response(outcome)
    status_code, payload = outcome
    if isinstance(payload, (bytes, str)):
        return httpx.Response(status_code, content=payload)
    return httpx.Response(status_code, json=payload)


class ScriptedTransport:
    """Callable handler replaying scripted outcomes.

    Attributes:
        requests: The requests received, in order.
        bodies: The body bytes of each received request.
    """

    def __init__(self, *outcomes: int | tuple[int, Any] | Exception, delay: float = 0.0) -> None:
        self.outcomes = list(outcomes)
        self.delay = delay
        self.requests: list[httpx.Request] = []
        self.bodies: list[bytes] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def _next(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.bodies.append(request.content)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return make_response(outcome)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.delay:
            time.sleep(self.delay)
        return self._next(request)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))

    def async_client(self) -> httpx.AsyncClient:
        async def handler(request: httpx.Request) -> httpx.Response:
            if self.delay:
                await asyncio.sleep(self.delay)
            return self._next(request)

        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

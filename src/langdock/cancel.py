r"""Cancellation tokens shared by the sync and async executors.

A ``CancelToken`` flows through a whole call. It can be cancelled
explicitly from any thread, or it can carry a deadline. Its cause is
raised verbatim by the executor when it fires.
"""

from __future__ import annotations

__all__ = ["CancelToken"]

import asyncio
import contextlib
import threading
import time
from typing import TYPE_CHECKING, Any, TypeVar

from langdock.exceptions import Cancelled, DeadlineExceeded

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from concurrent.futures import Executor, Future

T = TypeVar("T")


class CancelToken:
    r"""Thread-safe cancellation signal with an optional deadline.

    Args:
        deadline: Optional ``time.monotonic()`` timestamp after which the
            token counts as cancelled with ``DeadlineExceeded``.

    Example:
        ```pycon
        >>> from langdock.cancel import CancelToken
        >>> token = CancelToken()
        >>> token.cancelled
        False
        >>> token.cancel()
        >>> token.cancelled
        True
        >>> type(token.cause).__name__
        'Cancelled'

        ```
    """

    def __init__(self, deadline: float | None = None) -> None:
        self._deadline = deadline
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._cause: BaseException | None = None
        self._callbacks: list[Callable[[], None]] = []

    @classmethod
    def with_timeout(cls, seconds: float) -> CancelToken:
        """Create a token that expires ``seconds`` from now.

        Args:
            seconds: The time budget in seconds. Must be > 0.

        Returns:
            A new token with a deadline.

        Raises:
            ValueError: If ``seconds`` is not positive.
        """
        if seconds <= 0:
            msg = f"seconds must be > 0, got {seconds}"
            raise ValueError(msg)
        return cls(deadline=time.monotonic() + seconds)

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(cancelled={self.cancelled})"

    @property
    def cancelled(self) -> bool:
        """``True`` once the token was cancelled or its deadline
        passed."""
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._fire(DeadlineExceeded("deadline exceeded"))
            return True
        return False

    @property
    def cause(self) -> BaseException | None:
        """The cancellation cause, or ``None`` if not cancelled."""
        if not self.cancelled:
            return None
        return self._cause

    def remaining(self) -> float | None:
        """Return the seconds left before the deadline, or ``None`` if
        the token has no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def cancel(self, cause: BaseException | None = None) -> None:
        """Cancel the token.

        Only the first call has an effect; later calls keep the
        original cause.

        Args:
            cause: The exception to report. Defaults to ``Cancelled``.
        """
        self._fire(cause if cause is not None else Cancelled("operation cancelled"))

    def raise_if_cancelled(self) -> None:
        """Raise the cancellation cause if the token has fired."""
        if self.cancelled:
            raise self._cause

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a callback invoked once when the token is cancelled.

        The callback runs immediately if the token already fired. Deadline
        expiry only triggers callbacks when it is observed; waiters that
        care about the deadline use ``remaining()`` as their timeout.

        Args:
            callback: A function without arguments.

        Returns:
            A function that unregisters the callback.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return lambda: self._remove_callback(callback)
        callback()
        return lambda: None

    def wait(self, timeout: float) -> bool:
        """Block for up to ``timeout`` seconds or until the token fires.

        Args:
            timeout: The maximum time to wait in seconds.

        Returns:
            ``True`` if the token is cancelled, ``False`` if the full
            timeout elapsed first.
        """
        if self.cancelled:
            return True
        remaining = self.remaining()
        if remaining is not None and remaining <= timeout:
            self._event.wait(remaining)
            return self.cancelled
        self._event.wait(timeout)
        return self.cancelled

    async def race(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        When the token fires, the pending awaitable is cancelled and the
        cancellation cause is raised. Cancellation wins when both are
        ready at the same time.

        Args:
            awaitable: The coroutine or future to run.

        Returns:
            The result of ``awaitable``.

        Raises:
            BaseException: The cancellation cause if the token fires.
        """
        loop = asyncio.get_running_loop()
        task: asyncio.Future[T] = asyncio.ensure_future(awaitable)
        waiter: asyncio.Future[None] = loop.create_future()

        def _wake() -> None:
            loop.call_soon_threadsafe(_resolve, waiter)

        remove = self.add_callback(_wake)
        try:
            # The loop may wake slightly before the deadline, so wait again
            # until either side is really done.
            while not (task.done() or self.cancelled):
                await asyncio.wait(
                    {task, waiter}, timeout=self.remaining(), return_when=asyncio.FIRST_COMPLETED
                )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            remove()
            if not waiter.done():
                waiter.cancel()

        if self.cancelled:
            await _discard(task)
            raise self._cause
        return task.result()

    def run_in(self, executor: Executor, fn: Callable[..., T], *args: Any) -> T:
        """Run ``fn(*args)`` on ``executor`` unless the token fires first.

        This is the blocking counterpart of ``race``. When the token fires,
        the pending call is abandoned: its worker keeps running until
        ``fn`` returns, and a result with a ``close`` method (e.g. an
        ``httpx.Response``) is closed once it arrives. Cancellation wins
        when both are ready at the same time.

        Args:
            executor: The executor running ``fn``.
            fn: The blocking function to run.
            *args: Positional arguments passed to ``fn``.

        Returns:
            The result of ``fn``.

        Raises:
            BaseException: The cancellation cause if the token fires.
        """
        self.raise_if_cancelled()
        future = executor.submit(fn, *args)
        ready = threading.Event()
        future.add_done_callback(lambda _: ready.set())
        remove = self.add_callback(ready.set)
        try:
            # The deadline is only observed when polled, so wake up at the
            # deadline and check again.
            while not (future.done() or self.cancelled):
                ready.wait(self.remaining())
        finally:
            remove()

        if self.cancelled:
            if not future.cancel():
                future.add_done_callback(_close_abandoned)
            raise self._cause
        return future.result()

    def _fire(self, cause: BaseException) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._cause = cause
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def _remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)


def _resolve(waiter: asyncio.Future[Any]) -> None:
    if not waiter.done():
        waiter.set_result(None)


def _close_abandoned(future: Future[Any]) -> None:
    if future.cancelled() or future.exception() is not None:
        return
    close = getattr(future.result(), "close", None)
    if close is not None:
        close()


async def _discard(task: asyncio.Future[Any]) -> None:
    if task.done():
        if not task.cancelled():
            # Consume the outcome so asyncio does not log it as never retrieved.
            task.exception()
        return
    task.cancel()
    # The outcome of an abandoned attempt is replaced by the cancellation cause.
    with contextlib.suppress(asyncio.CancelledError, Exception):
        await task

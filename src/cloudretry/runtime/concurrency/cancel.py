"""Cancellation primitives for retry waits.

- CancellationToken: thread-safe flag that interrupts synchronous waits
- CancelScope: async scope that cancels enclosed work after a timeout
- checkpoint: cooperative cancellation point for async loops
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types import TracebackType


class CancellationToken:
    """Thread-safe cancellation flag for synchronous retry loops.

    A token may be shared by many executor invocations; cancelling it wakes
    every thread currently waiting between attempts.

    Example:
        >>> token = CancellationToken()
        >>> threading.Timer(1.0, token.cancel).start()
        >>> result = execute(op, policy, cancel=token)  # stops waiting after ~1s
    """

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def wait(self, timeout: float) -> bool:
        """Block up to timeout seconds. Returns True if cancelled meanwhile."""
        return self._event.wait(timeout)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"


@dataclass(slots=True)
class CancelScope:
    """Cancellation scope with an optional timeout.

    Cancels the task that entered it once the timeout elapses; the resulting
    CancelledError is suppressed on exit when the scope itself triggered it.

    Example:
        >>> async with CancelScope(timeout=5.0) as scope:
        ...     result = await execute_async(op, policy)
        >>> if scope.cancel_called:
        ...     print("gave up waiting")
    """

    timeout: float | None = None
    _cancel_called: bool = field(default=False, repr=False)
    _host: asyncio.Task[object] | None = field(default=None, repr=False)
    _timeout_task: asyncio.Task[None] | None = field(default=None, repr=False)

    @property
    def cancel_called(self) -> bool:
        return self._cancel_called

    def cancel(self) -> None:
        """Cancel the task running inside this scope."""
        self._cancel_called = True
        if self._host is not None and not self._host.done():
            self._host.cancel()

    async def __aenter__(self) -> CancelScope:
        self._host = asyncio.current_task()
        if self.timeout is not None:
            self._timeout_task = asyncio.create_task(self._timeout_handler())
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool:
        if self._timeout_task is not None:
            self._timeout_task.cancel()
            try:
                await self._timeout_task
            except asyncio.CancelledError:
                pass
        if exc_type is asyncio.CancelledError and self._cancel_called:
            if self._host is not None:
                self._host.uncancel()
            return True
        return False

    async def _timeout_handler(self) -> None:
        assert self.timeout is not None
        await asyncio.sleep(self.timeout)
        self.cancel()


async def checkpoint() -> None:
    """Cooperative cancellation checkpoint. Yields to the event loop."""
    await asyncio.sleep(0)

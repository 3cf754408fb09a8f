"""
Cooperative task queues the pool defers work onto.

The pool never runs its rescale or reclamation bookkeeping inside a caller's
call. It hands those callbacks to a scheduler, which runs them once the caller
yields control: on the next iteration of an asyncio event loop, or when a host
without an event loop drains a ``ManualScheduler``.
"""

import asyncio
from collections import deque
from typing import Any, Callable, Protocol

from .log import get_contextual_logger


class Scheduler(Protocol):
    """Runs a callback later, after the current synchronous call returns."""

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        ...

    def flush(self) -> None:
        """Called by the pool at the start of every operation."""
        ...


class ManualScheduler:
    """
    FIFO queue drained explicitly by the host.

    Suitable for synchronous hosts and for tests that need to control exactly
    when deferred work runs.
    """

    def __init__(self) -> None:
        self._pending: deque[tuple[Callable[..., Any], tuple[Any, ...]]] = deque()

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        self._pending.append((callback, args))

    def flush(self) -> None:
        # The host decides when to drain
        pass

    @property
    def pending(self) -> int:
        return len(self._pending)

    def run_pending(self) -> int:
        """
        Run the callbacks queued so far, in order.

        Callbacks queued while draining wait for the next call, the same way
        an event loop defers them to its next iteration. Returns the number of
        callbacks run.
        """
        count = len(self._pending)
        for _ in range(count):
            callback, args = self._pending.popleft()
            callback(*args)
        return count


class AsyncioScheduler:
    """
    Defers callbacks onto an asyncio event loop with ``call_soon``.

    With no explicit loop, the running loop is looked up on every call. When
    none is running the callbacks are parked. ``flush()``, which the pool
    calls at the start of each acquire and release, hands parked callbacks to
    the running loop, or runs them right away when there is still no loop:
    the caller's previous pool call has returned by then.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop
        self._parked = ManualScheduler()
        self._warned = False
        self._handoff_scheduled = False
        self.logger = get_contextual_logger(__name__)

    def _get_loop(self) -> asyncio.AbstractEventLoop | None:
        if self._loop is not None and not self._loop.is_closed():
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        loop = self._get_loop()
        if loop is None:
            if not self._warned:
                self._warned = True
                self.logger.warning(
                    "No running event loop; deferring %s to the next pool operation",
                    getattr(callback, "__qualname__", callback),
                )
            self._parked.call_soon(callback, *args)
            return

        if self._parked.pending:
            # Keep FIFO order with callbacks parked earlier
            self._hand_off(loop)
        loop.call_soon(callback, *args)

    def flush(self) -> None:
        if not self._parked.pending:
            return

        loop = self._get_loop()
        if loop is None:
            self._handoff_scheduled = False
            self._parked.run_pending()
        else:
            self._hand_off(loop)

    def _hand_off(self, loop: asyncio.AbstractEventLoop) -> None:
        if not self._handoff_scheduled:
            self._handoff_scheduled = True
            loop.call_soon(self._run_handed_off)

    def _run_handed_off(self) -> None:
        self._handoff_scheduled = False
        self._parked.run_pending()

    @property
    def pending(self) -> int:
        return self._parked.pending

    def run_pending(self) -> int:
        return self._parked.run_pending()

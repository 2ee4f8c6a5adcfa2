from __future__ import annotations

import asyncio
import enum
from typing import Callable

Listener = Callable[[], None]


class CancelSignal:
    """Caller-owned flag that aborts the executions observing it.

    `cancel()` runs listeners synchronously, so it must be called from the event
    loop thread; other threads use `loop.call_soon_threadsafe(signal.cancel)`.

    Example:
        ```python
        signal = CancelSignal()
        signal.cancel()
        ```
    """

    def __init__(self) -> None:
        """Create an untriggered signal with no listeners.

        Example:
            ```python
            signal = CancelSignal()
            ```
        """
        self._cancelled = False
        self._listeners: list[Listener] = []

    @property
    def cancelled(self) -> bool:
        """Return True once `cancel()` has been called.

        Example:
            ```python
            if signal.cancelled:
                ...
            ```
        """
        return self._cancelled

    def cancel(self) -> None:
        """Trigger the signal and notify listeners once.

        Example:
            ```python
            signal.cancel()
            ```
        """
        if self._cancelled:
            return
        self._cancelled = True
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener()

    def add_listener(self, listener: Listener) -> None:
        """Register a callback fired when the signal is cancelled.

        Example:
            ```python
            signal.add_listener(lambda: print("aborted"))
            ```
        """
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        """Unregister a callback; unknown callbacks are ignored.

        Example:
            ```python
            signal.remove_listener(callback)
            ```
        """
        if listener in self._listeners:
            self._listeners.remove(listener)


class AbortReason(enum.Enum):
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class AbortContext:
    """Single-write record of why an in-flight task was aborted.

    The first `abort()` call wins: it records its reason and then cancels the
    task. Later calls are no-ops, so a timer and an external signal firing in
    the same tick are never both reported.

    Example:
        ```python
        ctx = AbortContext(task)
        ctx.abort(AbortReason.TIMED_OUT)
        ```
    """

    def __init__(self, task: asyncio.Future) -> None:
        """Bind the context to the task it may cancel.

        Example:
            ```python
            ctx = AbortContext(asyncio.ensure_future(coro))
            ```
        """
        self._task = task
        self._reason: AbortReason | None = None

    @property
    def reason(self) -> AbortReason | None:
        """Return the recorded abort reason, if any.

        Example:
            ```python
            timed_out = ctx.reason is AbortReason.TIMED_OUT
            ```
        """
        return self._reason

    def abort(self, reason: AbortReason) -> bool:
        """Record `reason` and cancel the task if nothing aborted it yet.

        Example:
            ```python
            first = ctx.abort(AbortReason.CANCELLED)
            ```
        """
        if self._reason is not None:
            return False
        self._reason = reason
        if not self._task.done():
            self._task.cancel()
        return True

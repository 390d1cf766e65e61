"""Processed-bytes notifications for a running multipart copy.

The reporter is an append-only channel: any number of ``next()`` calls
followed by at most one terminal signal, either ``complete()`` or
``error()``.  Signals after the terminal one are dropped.

Consumers either register callbacks with ``subscribe()`` or iterate
``stream()``.  A stream opened after some values were emitted only sees
the later ones.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable

logger = logging.getLogger(__name__)

_COMPLETE = object()


class _Subscriber:
    def __init__(
        self,
        on_next: Callable[[int], object],
        on_error: Callable[[BaseException], object] | None,
        on_complete: Callable[[], object] | None,
    ) -> None:
        self.on_next = on_next
        self.on_error = on_error
        self.on_complete = on_complete


class ProgressReporter:
    """Emits the running total of bytes copied as parts succeed."""

    def __init__(self) -> None:
        self._subscribers: list[_Subscriber] = []
        self._queues: list[asyncio.Queue] = []
        self._closed = False
        self._error: BaseException | None = None
        self._last_value: int | None = None

    @property
    def closed(self) -> bool:
        """True once complete() or error() has been signalled."""
        return self._closed

    @property
    def last_value(self) -> int | None:
        return self._last_value

    def subscribe(
        self,
        on_next: Callable[[int], object],
        on_error: Callable[[BaseException], object] | None = None,
        on_complete: Callable[[], object] | None = None,
    ) -> Callable[[], None]:
        """Register callbacks and return a function that removes them.

        Subscribing after the terminal signal delivers that signal at once.
        """
        subscriber = _Subscriber(on_next, on_error, on_complete)
        if self._closed:
            self._deliver_terminal(subscriber)
            return lambda: None

        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    async def stream(self) -> AsyncIterator[int]:
        """Yield cumulative byte counts until the channel closes.

        Raises:
            BaseException: The error passed to ``error()``, if any.
        """
        if self._closed:
            if self._error is not None:
                raise self._error
            return

        queue: asyncio.Queue = asyncio.Queue()
        self._queues.append(queue)
        try:
            while True:
                item = await queue.get()
                if item is _COMPLETE:
                    return
                if isinstance(item, BaseException):
                    raise item
                yield item
        finally:
            if queue in self._queues:
                self._queues.remove(queue)

    def next(self, value: int) -> None:
        if self._closed:
            return
        self._last_value = value
        for queue in self._queues:
            queue.put_nowait(value)
        for subscriber in list(self._subscribers):
            self._call(subscriber.on_next, value)

    def complete(self) -> None:
        if self._closed:
            return
        self._closed = True
        for queue in self._queues:
            queue.put_nowait(_COMPLETE)
        for subscriber in self._subscribers:
            self._deliver_terminal(subscriber)
        self._subscribers.clear()

    def error(self, exc: BaseException) -> None:
        if self._closed:
            return
        self._closed = True
        self._error = exc
        for queue in self._queues:
            queue.put_nowait(exc)
        for subscriber in self._subscribers:
            self._deliver_terminal(subscriber)
        self._subscribers.clear()

    def _deliver_terminal(self, subscriber: _Subscriber) -> None:
        if self._error is not None:
            if subscriber.on_error is not None:
                self._call(subscriber.on_error, self._error)
        elif subscriber.on_complete is not None:
            self._call(subscriber.on_complete)

    @staticmethod
    def _call(callback: Callable[..., object], *args: object) -> None:
        # A failing subscriber must not break the copy it observes.
        try:
            callback(*args)
        except Exception:
            logger.exception("Progress subscriber %r raised", callback)

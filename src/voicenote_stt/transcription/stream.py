"""Multi-subscriber broadcast of transcription results.

TranscriptionStream is the one observable the STT service exposes. Whichever
provider is active feeds it; any number of consumers read from it, either as
async iterators (one queue per subscriber) or as plain callbacks.

Example:
    stream = TranscriptionStream()

    async with stream.subscribe() as results:
        async for result in results:
            if result.is_final:
                save(result.text)

"""

import asyncio
import logging
from collections.abc import Callable

from .types import TranscriptionResult

logger = logging.getLogger(__name__)

ResultListener = Callable[[TranscriptionResult], None]


class TranscriptionSubscription:
    """One consumer's view of the stream."""

    def __init__(self, stream: "TranscriptionStream"):
        self._stream = stream
        self._queue: asyncio.Queue[TranscriptionResult | None] = asyncio.Queue()
        self._ended = False

    @property
    def closed(self) -> bool:
        return self._ended

    def _deliver(self, result: TranscriptionResult) -> None:
        if not self._ended:
            self._queue.put_nowait(result)

    def _end(self) -> None:
        if not self._ended:
            self._ended = True
            self._queue.put_nowait(None)

    def __aiter__(self) -> "TranscriptionSubscription":
        return self

    async def __anext__(self) -> TranscriptionResult:
        item = await self._queue.get()
        if item is None:
            self._queue.put_nowait(None)
            raise StopAsyncIteration
        return item

    async def get(self, timeout: float | None = None) -> TranscriptionResult | None:
        """Next result, or None once the subscription has ended.

        Raises:
            asyncio.TimeoutError: If ``timeout`` elapses first.

        """
        item = await asyncio.wait_for(self._queue.get(), timeout)
        if item is None:
            # Keep the end marker for later readers
            self._queue.put_nowait(None)
        return item

    def drain(self) -> list[TranscriptionResult]:
        """Return every result received so far without waiting."""
        drained = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is None:
                self._queue.put_nowait(None)
                break
            drained.append(item)
        return drained

    def close(self) -> None:
        """Detach from the stream."""
        self._stream._remove(self)
        self._end()

    async def __aenter__(self) -> "TranscriptionSubscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class TranscriptionStream:
    """Long-lived broadcast channel of TranscriptionResult."""

    def __init__(self) -> None:
        self._subscriptions: list[TranscriptionSubscription] = []
        self._listeners: list[ResultListener] = []
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions) + len(self._listeners)

    def subscribe(self) -> TranscriptionSubscription:
        """Create a new async subscription.

        Subscribing to a closed stream returns an already-ended subscription.
        """
        subscription = TranscriptionSubscription(self)
        if self._closed:
            subscription._end()
        else:
            self._subscriptions.append(subscription)
        return subscription

    def add_listener(self, listener: ResultListener) -> Callable[[], None]:
        """Register a synchronous callback; returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def publish(self, result: TranscriptionResult) -> None:
        """Deliver ``result`` to every subscriber in production order."""
        if self._closed:
            logger.debug("Dropping result published after close: %r", result)
            return

        for subscription in list(self._subscriptions):
            subscription._deliver(result)
        for listener in list(self._listeners):
            try:
                listener(result)
            except Exception:
                logger.exception("Transcription listener failed")

    def close(self) -> None:
        """End every subscription. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        for subscription in self._subscriptions:
            subscription._end()
        self._subscriptions.clear()
        self._listeners.clear()

    def _remove(self, subscription: TranscriptionSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

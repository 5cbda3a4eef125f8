"""ProgressChannel — one-way FIFO of ``BuildUpdate`` events.

The build worker is the single producer; the invoking thread is the single
consumer.  Sending never blocks and never fails the build: when the channel
is full, or the listener has gone away, the update is dropped and counted.
Closing the channel (done by the worker once it finishes) ends iteration on
the consumer side.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Iterator
from contextlib import suppress

from gantry.models.updates import BuildUpdate

logger = logging.getLogger(__name__)

_DROP_WARN_INTERVAL = 100


class _Closed:
    """Sentinel marking the end of the stream."""


_CLOSED = _Closed()


class ProgressChannel:
    """Non-blocking-send, blocking-receive channel of build updates.

    Parameters
    ----------
    capacity:
        Maximum number of buffered updates.  ``0`` (the default) means
        unbounded.
    """

    def __init__(self, capacity: int = 0) -> None:
        self._queue: queue.Queue[BuildUpdate | _Closed] = queue.Queue(maxsize=capacity)
        self._closed = threading.Event()
        self._listening = True
        self.dropped = 0

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def send(self, update: BuildUpdate) -> bool:
        """Try to enqueue *update* without blocking.

        Returns ``True`` if the update was queued.  A full channel, a closed
        channel or a listener that stopped listening all drop the update.
        """
        if self._closed.is_set() or not self._listening:
            return False
        try:
            self._queue.put_nowait(update)
        except queue.Full:
            self.dropped += 1
            if self.dropped == 1 or self.dropped % _DROP_WARN_INTERVAL == 0:
                logger.warning(
                    "Progress channel full: dropped %s update(s) (capacity=%s)",
                    self.dropped,
                    self._queue.maxsize,
                )
            return False
        return True

    def close(self) -> None:
        """Mark the end of the stream.  Idempotent.

        The end marker is always delivered; on a full channel the oldest
        buffered update is discarded to make room for it.
        """
        if self._closed.is_set():
            return
        self._closed.set()
        while True:
            try:
                self._queue.put_nowait(_CLOSED)
                return
            except queue.Full:
                with suppress(queue.Empty):
                    self._queue.get_nowait()
                self.dropped += 1

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    def receive(self, timeout: float | None = None) -> BuildUpdate | None:
        """Block until the next update arrives.

        Returns ``None`` once the channel is closed and drained.

        Raises
        ------
        queue.Empty
            If *timeout* elapses before an update arrives.
        """
        item = self._queue.get(timeout=timeout)
        if isinstance(item, _Closed):
            # Leave the marker in place so later receivers also stop.
            self._queue.put_nowait(item)
            return None
        return item

    def __iter__(self) -> Iterator[BuildUpdate]:
        while True:
            update = self.receive()
            if update is None:
                return
            yield update

    def listen(self, callback: Callable[[BuildUpdate], None]) -> None:
        """Feed every update to *callback* until the channel closes."""
        for update in self:
            callback(update)

    def stop_listening(self) -> None:
        """Tell the producer nobody is consuming any more.

        Further sends become no-ops and buffered updates are discarded.
        """
        self._listening = False
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return
            if isinstance(item, _Closed):
                self._queue.put_nowait(item)
                return
